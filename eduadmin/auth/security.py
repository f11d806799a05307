from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import jwt

from eduadmin.core.config import settings


def create_access_token(
    *, user_id: UUID, role: str, expires_minutes: Optional[int] = None
) -> str:
    """Issue a bearer token carrying the caller id and role (ops scripts and tests; login lives elsewhere)."""
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes

    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    claims = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

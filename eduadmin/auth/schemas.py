from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Caller identity resolved from the bearer token."""

    id: UUID
    role: str

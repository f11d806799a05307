from fastapi import Depends, HTTPException

from eduadmin.auth.dependencies import get_current_user
from eduadmin.auth.schemas import CurrentUser
from eduadmin.core.exceptions import ForbiddenError, ServiceError


def authorize(current_user: CurrentUser, *roles: str) -> CurrentUser:
    """Capability check: allow the caller if their role is one of `roles`, else raise ForbiddenError."""
    if current_user.role not in roles:
        raise ForbiddenError(f"Access denied: {' or '.join(roles)} role required")
    return current_user


def require_role(*roles: str):
    """
    Dependency factory to enforce a caller role.

    Example:
        Depends(require_role("admin"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        try:
            return authorize(current_user, *roles)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    return _checker

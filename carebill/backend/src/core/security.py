"""Security helpers resolving the session principal for API routes."""

from __future__ import annotations

from typing import Iterable

from fastapi import Depends, HTTPException, Request, status

from carebill.backend.src.schemas.user import UserProfile
from carebill.backend.src.services.context import AppContext

ADMIN_ROLES = frozenset({"admin", "super_admin"})


def get_context(request: Request) -> AppContext:
    """Return the session context bound to the running application."""

    return request.app.state.context


def get_current_user(context: AppContext = Depends(get_context)) -> UserProfile:
    """Return the signed-in principal or reject the request."""

    session = context.session
    if session.loading:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session is still loading",
        )
    principal = session.principal
    if not session.is_authenticated or principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return principal


def _enforce_roles(
    user: UserProfile, allowed_roles: set[str], *, allow_admin: bool = True
) -> UserProfile:
    """Ensure the principal has one of the allowed roles."""

    if user.role in allowed_roles:
        return user
    if allow_admin and user.role in ADMIN_ROLES:
        return user
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient permissions",
    )


def require_role(
    roles: Iterable[str],
    *,
    allow_admin: bool = True,
):
    """Return a dependency that enforces one of the provided roles."""

    allowed = set(roles)

    def dependency(user: UserProfile = Depends(get_current_user)) -> UserProfile:
        return _enforce_roles(user, allowed, allow_admin=allow_admin)

    return dependency


def require_admin_user(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    """Dependency ensuring the caller is an administrator."""

    return _enforce_roles(user, set(ADMIN_ROLES), allow_admin=False)


__all__ = [
    "ADMIN_ROLES",
    "get_context",
    "get_current_user",
    "require_admin_user",
    "require_role",
]

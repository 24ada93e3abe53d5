"""
Role-Based Access Control (RBAC)

Role hierarchy (highest → lowest privilege):
    admin > member

Only the administrative delete requires more than a verified token.

Usage:
    @router.post("/documents/delete")
    async def delete_doc(
        user: UserSession = Depends(require_role("admin")),
    ): ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status

from docuintel.auth.token import UserSession, get_current_user

_ROLE_ORDER: dict[str, int] = {
    "member": 0,
    "admin":  1,
}


def _has_role(user_role: str, required_role: str) -> bool:
    """Return True if user_role meets or exceeds required_role."""
    user_level     = _ROLE_ORDER.get(user_role, -1)
    required_level = _ROLE_ORDER.get(required_role, 999)
    return user_level >= required_level


def require_role(minimum_role: str):
    """
    Returns a FastAPI dependency that verifies the JWT and checks the
    user's role meets the minimum requirement, passing the UserSession on.
    """
    if minimum_role not in _ROLE_ORDER:
        raise ValueError(f"Invalid minimum_role={minimum_role!r}. Valid values: {list(_ROLE_ORDER)}")

    async def _dependency(
        user: Annotated[UserSession, Depends(get_current_user)],
    ) -> UserSession:
        if not _has_role(user.role, minimum_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"Insufficient permissions. "
                    f"Required: '{minimum_role}', your role: '{user.role}'."
                ),
            )
        return user

    return _dependency


RequireAdmin = require_role("admin")

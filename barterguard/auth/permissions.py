"""Role-based access control.

Role hierarchy: admin > moderator > member
"""

from __future__ import annotations

from fastapi import HTTPException, status

from barterguard.auth.models import Role, User


def has_permission(user: User, required_role: Role) -> bool:
    """True if the user's role is at least *required_role*."""
    return user.role.level >= required_role.level


def require_role(user: User, role: Role) -> None:
    """Raise ``HTTPException(403)`` unless *user* holds *role* or higher.

    Usage in a router::

        @router.get("/admin-only")
        async def admin_only(user: User = Depends(get_current_user)):
            require_role(user, Role.moderator)
            ...
    """
    if not has_permission(user, role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires role '{role.value}' or higher",
        )

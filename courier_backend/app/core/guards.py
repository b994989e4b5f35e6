"""
Security guards for role-based access control.

Roles live in the users table, not in the token, so every admin check is
a real-time lookup.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.core.dependencies import get_current_user
from courier_backend.app.core.exceptions import ForbiddenError
from courier_backend.app.db.session import get_db
from courier_backend.app.models.enums import UserRole
from courier_backend.app.services import user_directory


async def require_admin(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Dependency for admin-only endpoints.

    Usage:
        @router.patch("/users/{user_id}/role")
        async def set_role(user_id: str, admin: dict = Depends(require_admin)):
            ...

    Returns:
        Identity payload if the user's stored role is admin

    Raises:
        ForbiddenError: no matching user, or role is not admin
    """
    user = await user_directory.find_by_email(db, current_user["email"])

    if user is None or user.effective_role != UserRole.ADMIN:
        raise ForbiddenError()

    return current_user

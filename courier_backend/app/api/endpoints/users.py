"""
User API Endpoints.

Sign-in bookkeeping, role lookup and admin user management.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from courier_backend.app.db.session import get_db
from courier_backend.app.core.dependencies import get_current_user
from courier_backend.app.core.guards import require_admin
from courier_backend.app.schemas.common import MessageResponse
from courier_backend.app.schemas.user import (
    UserLoginRecord,
    UserLoginResponse,
    RoleUpdate,
    RoleResponse,
    UserResponse,
)
from courier_backend.app.services import user_directory

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserLoginResponse)
async def record_login(
    login: UserLoginRecord,
    db: AsyncSession = Depends(get_db)
):
    """Create the user on first sign-in, otherwise refresh last_log_in."""
    fields = login.model_dump(exclude={"email"}, exclude_none=True)
    result = await user_directory.upsert_on_login(db, login.email, fields)
    if result["inserted"]:
        return UserLoginResponse(message="User created", inserted=True, inserted_id=result["id"])
    return UserLoginResponse(message="User already exists", inserted=False)


@router.get("", response_model=List[UserResponse])
async def list_users(
    limit: int = Query(50, ge=1, le=200),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Latest users, newest first."""
    users = await user_directory.list_users(db, limit)
    return [UserResponse.model_validate(u) for u in users]


@router.get("/search", response_model=List[UserResponse])
async def search_users(
    email: Optional[str] = Query(None, description="Email prefix"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    users = await user_directory.search_by_email_prefix(db, email, limit=10)
    return [UserResponse.model_validate(u) for u in users]


@router.get("/{email}/role", response_model=RoleResponse)
async def get_user_role(
    email: str = Path(..., description="User email"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    role = await user_directory.get_role(db, email)
    return RoleResponse(role=role)


@router.patch("/{user_id}/role", response_model=MessageResponse)
async def update_user_role(
    update: RoleUpdate,
    user_id: str = Path(..., description="User ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Set a user's role to admin or user (admin only)."""
    user = await user_directory.set_role(db, user_id, update.role, actor_email=admin["email"])
    return MessageResponse(message=f"User role updated to {user.effective_role.value}")

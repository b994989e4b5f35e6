"""
User directory service.

Users are keyed by lower-case email. First sign-in inserts, later
sign-ins bump ``last_log_in``.
"""

import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sqlalchemy.exc import IntegrityError

from courier_backend.app.db.session import parse_id, utcnow
from courier_backend.app.core.exceptions import InvalidRoleError, MissingFieldError, NotFoundError
from courier_backend.app.models.user import User
from courier_backend.app.models.enums import UserRole, ASSIGNABLE_ROLES
from courier_backend.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


async def find_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Case-insensitive exact lookup."""
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def upsert_on_login(db: AsyncSession, email: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Record a sign-in.

    Existing user: ``last_log_in`` is refreshed and nothing else changes.
    New user: inserted with ``created_at`` and the supplied profile fields.

    Two first logins racing on the same email are resolved by the unique
    index: the loser rolls back and is treated as an existing user.

    Returns:
        {"inserted": bool, "id": str}
    """
    email = email.strip().lower()

    user = await find_by_email(db, email)
    if user is None:
        user = User(email=email, role=UserRole.USER, **fields)
        db.add(user)
        try:
            await db.commit()
            logger.info("Created user %s", email)
            return {"inserted": True, "id": user.id}
        except IntegrityError:
            await db.rollback()
            logger.info("Concurrent first login for %s, treating as existing", email)
            user = await find_by_email(db, email)
            if user is None:
                raise

    user.last_log_in = utcnow()
    await db.commit()
    return {"inserted": False, "id": user.id}


async def search_by_email_prefix(db: AsyncSession, query: Optional[str], limit: int = 10) -> list[User]:
    """Case-insensitive prefix search; LIKE wildcards in ``query`` match literally."""
    if not query:
        raise MissingFieldError("Missing email query")

    result = await db.execute(
        select(User)
        .where(User.email.startswith(query.strip().lower(), autoescape=True))
        .order_by(User.email)
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_role(db: AsyncSession, email: str) -> UserRole:
    if not email:
        raise MissingFieldError("Email required")

    user = await find_by_email(db, email)
    if user is None:
        raise NotFoundError("User")
    return user.effective_role


async def set_role(db: AsyncSession, user_id: str, role: str, actor_email: Optional[str] = None) -> User:
    """
    Set a user's role to ``admin`` or ``user``.

    The ``rider`` role is never set here; it only comes from rider activation.
    """
    try:
        new_role = UserRole(role)
    except ValueError:
        raise InvalidRoleError()
    if new_role not in ASSIGNABLE_ROLES:
        raise InvalidRoleError()

    user = await db.get(User, parse_id(user_id, "user"))
    if user is None:
        raise NotFoundError("User")

    previous = user.effective_role
    user.role = new_role
    log_event(
        db,
        AuditAction.ROLE_CHANGED,
        actor_email=actor_email,
        target_id=user.id,
        metadata={"from": previous.value, "to": new_role.value},
    )
    await db.commit()
    logger.info("Role of %s changed %s -> %s", user.email, previous.value, new_role.value)
    return user


async def list_users(db: AsyncSession, limit: int = 50) -> list[User]:
    result = await db.execute(select(User).order_by(desc(User.created_at)).limit(limit))
    return list(result.scalars().all())


async def promote_to_rider(db: AsyncSession, email: str) -> User:
    """
    Give ``email`` the rider role, creating the user if needed.

    Does not commit; the caller's transaction owns this write.
    """
    user = await find_by_email(db, email)
    if user is None:
        user = User(email=email.strip().lower(), role=UserRole.RIDER)
        db.add(user)
    else:
        user.role = UserRole.RIDER
    return user

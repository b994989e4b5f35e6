"""
Rider directory service.

Registration creates a pending application. The rider role is granted
only when an admin activates the application, never at registration.
"""

import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from courier_backend.app.db.session import parse_id
from courier_backend.app.core.exceptions import ConflictError, MissingFieldError, NotFoundError
from courier_backend.app.models.rider import Rider
from courier_backend.app.models.rider_enums import RiderStatus, WorkStatus
from courier_backend.app.services import user_directory
from courier_backend.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


async def register_rider(db: AsyncSession, fields: Dict[str, Any]) -> Rider:
    """
    Insert a rider application with status=pending, work_status=idle.

    Raises:
        ConflictError: an application already exists for this email
    """
    rider = Rider(
        **{**fields, "email": fields["email"].strip().lower()},
        status=RiderStatus.PENDING,
        work_status=WorkStatus.IDLE,
    )
    db.add(rider)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Rider application already exists for this email")

    logger.info("Rider application %s registered for %s", rider.id, rider.email)
    return rider


async def get_rider(db: AsyncSession, rider_id: str) -> Rider:
    rider = await db.get(Rider, parse_id(rider_id, "rider"))
    if rider is None:
        raise NotFoundError("Rider")
    return rider


async def list_by_status(db: AsyncSession, status: RiderStatus) -> list[Rider]:
    result = await db.execute(
        select(Rider).where(Rider.status == status).order_by(Rider.created_at)
    )
    return list(result.scalars().all())


async def list_by_district(db: AsyncSession, district: Optional[str]) -> list[Rider]:
    if not district:
        raise MissingFieldError("District is required")

    result = await db.execute(
        select(Rider).where(Rider.district == district).order_by(Rider.created_at)
    )
    return list(result.scalars().all())


async def set_status(
    db: AsyncSession,
    rider_id: str,
    status: RiderStatus,
    email: Optional[str] = None,
    actor_email: Optional[str] = None,
) -> Rider:
    """
    Change a rider's application status.

    Activation promotes the matching user (``email``, falling back to the
    rider's own email) to the rider role in the same transaction.
    """
    rider = await get_rider(db, rider_id)
    previous = rider.status
    rider.status = status

    if status == RiderStatus.ACTIVE:
        await user_directory.promote_to_rider(db, email or rider.email)

    log_event(
        db,
        AuditAction.RIDER_STATUS_CHANGED,
        actor_email=actor_email,
        target_id=rider.id,
        metadata={"from": previous.value, "to": status.value},
    )

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Rider %s status %s -> %s", rider.id, previous.value, status.value)
    return rider

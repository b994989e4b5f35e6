"""
Parcel lifecycle service.

Owns parcel creation, rider assignment, delivery status transitions and
cash-out. Status moves strictly forward:

    pending → rider_assigned → in_transit → delivered | service_center_delivered

Writes that touch both a parcel and its rider commit in one transaction.
"""

import logging
import uuid
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, desc, func
from sqlalchemy.exc import IntegrityError

from courier_backend.app.db.session import parse_id, utcnow
from courier_backend.app.core.exceptions import ConflictError, MissingFieldError, NotFoundError
from courier_backend.app.models.parcel import Parcel
from courier_backend.app.models.parcel_enums import (
    CashoutStatus,
    DeliveryStatus,
    PaymentStatus,
    DELIVERY_TRANSITIONS,
    OPEN_DELIVERY_STATUSES,
    COMPLETED_DELIVERY_STATUSES,
)
from courier_backend.app.models.rider import Rider
from courier_backend.app.models.rider_enums import RiderStatus, WorkStatus
from courier_backend.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


def generate_tracking_id() -> str:
    return f"TRK-{uuid.uuid4().hex[:12].upper()}"


async def list_parcels(
    db: AsyncSession,
    created_by: Optional[str] = None,
    payment_status: Optional[PaymentStatus] = None,
    delivery_status: Optional[DeliveryStatus] = None,
    assigned_rider_email: Optional[str] = None,
) -> list[Parcel]:
    """
    List parcels newest first.

    With no filters every parcel is returned; there is no pagination.
    """
    query = select(Parcel)

    if created_by:
        query = query.where(Parcel.created_by == created_by.lower())
    if payment_status:
        query = query.where(Parcel.payment_status == payment_status)
    if delivery_status:
        query = query.where(Parcel.delivery_status == delivery_status)
    if assigned_rider_email:
        query = query.where(Parcel.assigned_rider_email == assigned_rider_email.lower())

    result = await db.execute(query.order_by(desc(Parcel.created_at)))
    return list(result.scalars().all())


async def _list_rider_parcels(db: AsyncSession, email: Optional[str], statuses) -> list[Parcel]:
    if not email:
        raise MissingFieldError("Rider email is required")

    result = await db.execute(
        select(Parcel)
        .where(
            Parcel.assigned_rider_email == email.lower(),
            Parcel.delivery_status.in_(statuses),
        )
        .order_by(desc(Parcel.created_at))
    )
    return list(result.scalars().all())


async def list_rider_tasks(db: AsyncSession, email: Optional[str]) -> list[Parcel]:
    """Parcels the rider still has to pick up or deliver."""
    return await _list_rider_parcels(db, email, OPEN_DELIVERY_STATUSES)


async def list_rider_completed(db: AsyncSession, email: Optional[str]) -> list[Parcel]:
    return await _list_rider_parcels(db, email, COMPLETED_DELIVERY_STATUSES)


async def get_parcel(db: AsyncSession, parcel_id: str) -> Parcel:
    parcel = await db.get(Parcel, parse_id(parcel_id, "parcel"))
    if parcel is None:
        raise NotFoundError("Parcel")
    return parcel


async def create_parcel(db: AsyncSession, fields: Dict[str, Any], created_by: str) -> Parcel:
    """
    Insert a parcel as unpaid and pending.

    ``created_by`` defaults to the authenticated email when the payload
    omits it. A tracking code is generated when the client sends none.
    """
    data = dict(fields)
    data["created_by"] = (data.get("created_by") or created_by).lower()
    data["tracking_id"] = data.get("tracking_id") or generate_tracking_id()

    parcel = Parcel(
        **data,
        payment_status=PaymentStatus.UNPAID,
        delivery_status=DeliveryStatus.PENDING,
        created_at=utcnow(),
    )
    db.add(parcel)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Tracking ID '{data['tracking_id']}' already exists")

    logger.info("Parcel %s created by %s", parcel.id, parcel.created_by)
    return parcel


async def delete_parcel(db: AsyncSession, parcel_id: str, actor_email: Optional[str] = None) -> bool:
    """
    Delete a parcel.

    Returns False when nothing matched; deleting twice is not an error.
    Payments and tracking events referencing the parcel are kept.
    """
    parcel = await db.get(Parcel, parse_id(parcel_id, "parcel"))
    if parcel is None:
        return False

    await db.delete(parcel)
    log_event(
        db,
        AuditAction.PARCEL_DELETED,
        actor_email=actor_email,
        target_id=parcel.id,
        metadata={"tracking_id": parcel.tracking_id},
    )
    await db.commit()
    return True


def _ensure_transition(parcel: Parcel, target: DeliveryStatus) -> None:
    allowed = DELIVERY_TRANSITIONS[parcel.delivery_status]
    if target not in allowed:
        raise ConflictError(
            f"Cannot move parcel from {parcel.delivery_status.value} to {target.value}"
        )


async def _write_if_status(db: AsyncSession, parcel: Parcel, expected: DeliveryStatus, **values) -> None:
    """
    Apply ``values`` only while the stored status is still ``expected``.

    The status read earlier may be stale; the WHERE clause re-checks it in
    the same statement that writes, so of two racing requests only one
    matches a row.

    Raises:
        ConflictError: the parcel moved on since it was read
    """
    result = await db.execute(
        update(Parcel)
        .where(Parcel.id == parcel.id, Parcel.delivery_status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConflictError(f"Parcel is no longer {expected.value}")
    await db.refresh(parcel)


async def assign_rider(
    db: AsyncSession,
    parcel_id: str,
    rider_id: str,
    rider_name: str,
    rider_email: str,
    actor_email: Optional[str] = None,
) -> Parcel:
    """
    Assign an active rider to a pending parcel.

    The parcel takes the rider's identity and moves to rider_assigned; the
    rider moves to in_delivery. Both rows commit together or not at all.
    """
    parcel = await get_parcel(db, parcel_id)
    rider = await db.get(Rider, parse_id(rider_id, "rider"))
    if rider is None:
        raise NotFoundError("Rider")
    if rider.status != RiderStatus.ACTIVE:
        raise ConflictError("Rider is not active")

    _ensure_transition(parcel, DeliveryStatus.RIDER_ASSIGNED)

    parcel_key, rider_key = parcel.id, rider.id
    assigned_email = (rider_email or rider.email).lower()

    try:
        # Parcel first: the loser of a race stops here and never marks its rider busy
        await _write_if_status(
            db,
            parcel,
            DeliveryStatus.PENDING,
            delivery_status=DeliveryStatus.RIDER_ASSIGNED,
            assigned_rider_id=rider_key,
            assigned_rider_email=assigned_email,
            assigned_rider_name=rider_name or rider.name,
        )
        claimed = await db.execute(
            update(Rider)
            .where(Rider.id == rider_key, Rider.status == RiderStatus.ACTIVE)
            .values(work_status=WorkStatus.IN_DELIVERY)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            raise ConflictError("Rider is not active")

        log_event(
            db,
            AuditAction.RIDER_ASSIGNED,
            actor_email=actor_email,
            target_id=parcel_key,
            metadata={"rider_id": rider_key, "rider_email": assigned_email},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Parcel %s assigned to rider %s", parcel_key, rider_key)
    return parcel


async def _rider_has_open_parcels(db: AsyncSession, rider_id: str, excluding: str) -> bool:
    result = await db.execute(
        select(func.count(Parcel.id)).where(
            Parcel.assigned_rider_id == rider_id,
            Parcel.id != excluding,
            Parcel.delivery_status.in_(OPEN_DELIVERY_STATUSES),
        )
    )
    return result.scalar() > 0


async def update_delivery_status(db: AsyncSession, parcel_id: str, status: DeliveryStatus) -> Parcel:
    """
    Advance a parcel's delivery status.

    in_transit stamps picked_at; delivered and service_center_delivered
    stamp delivered_at. On completion the rider goes back to idle unless
    they still carry other open parcels.

    Raises:
        ConflictError: the move is not the next legal step, or targets
            rider_assigned (use assign_rider)
    """
    parcel = await get_parcel(db, parcel_id)

    if status == DeliveryStatus.RIDER_ASSIGNED:
        raise ConflictError("Use rider assignment to move a parcel to rider_assigned")
    _ensure_transition(parcel, status)

    parcel_key = parcel.id
    previous = parcel.delivery_status

    values = {"delivery_status": status}
    if status == DeliveryStatus.IN_TRANSIT:
        values["picked_at"] = utcnow()
    elif status in COMPLETED_DELIVERY_STATUSES:
        values["delivered_at"] = utcnow()

    try:
        await _write_if_status(db, parcel, previous, **values)

        if status in COMPLETED_DELIVERY_STATUSES and parcel.assigned_rider_id:
            rider = await db.get(Rider, parcel.assigned_rider_id)
            if rider is not None and not await _rider_has_open_parcels(db, rider.id, parcel_key):
                rider.work_status = WorkStatus.IDLE

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Parcel %s status %s -> %s", parcel_key, previous.value, status.value)
    return parcel


async def mark_cashed_out(db: AsyncSession, parcel_id: str) -> Parcel:
    """
    Record that the rider's collection for a completed parcel was settled.

    Raises:
        ConflictError: delivery not completed, or already cashed out
    """
    parcel = await get_parcel(db, parcel_id)

    if parcel.delivery_status not in COMPLETED_DELIVERY_STATUSES:
        raise ConflictError("Parcel must be delivered before cash-out")
    if parcel.cashout_status == CashoutStatus.CASHED_OUT:
        raise ConflictError("Parcel already cashed out")

    parcel_key = parcel.id
    try:
        result = await db.execute(
            update(Parcel)
            .where(Parcel.id == parcel_key, Parcel.cashout_status.is_(None))
            .values(cashout_status=CashoutStatus.CASHED_OUT, cashed_out_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("Parcel already cashed out")

        log_event(
            db,
            AuditAction.PARCEL_CASHED_OUT,
            target_id=parcel_key,
            metadata={"rider_id": parcel.assigned_rider_id},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(parcel)
    return parcel

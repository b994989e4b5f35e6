"""
Payment recording service.

Marking a parcel paid and inserting its Payment row happen in a single
transaction, so a failure between the two leaves neither behind.
"""

import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, desc
from sqlalchemy.exc import IntegrityError

from courier_backend.app.core.config import settings
from courier_backend.app.db.session import parse_id, utcnow
from courier_backend.app.core.exceptions import ConflictError
from courier_backend.app.models.parcel import Parcel
from courier_backend.app.models.parcel_enums import PaymentStatus
from courier_backend.app.models.payment import Payment
from courier_backend.app.services import parcel_lifecycle
from courier_backend.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


async def find_by_idempotency_key(db: AsyncSession, key: str) -> Optional[Payment]:
    result = await db.execute(select(Payment).where(Payment.idempotency_key == key))
    return result.scalar_one_or_none()


def build_payment(**fields) -> Payment:
    return Payment(**fields)


async def record_payment(
    db: AsyncSession,
    parcel_id: str,
    email: str,
    amount: float,
    transaction_id: str,
    payment_method: Optional[str] = None,
    user_name: Optional[str] = None,
    idempotency_key: Optional[str] = None,
) -> tuple[Payment, bool]:
    """
    Mark the parcel paid and insert the Payment.

    ``idempotency_key`` defaults to ``transaction_id``. Replaying a known
    key returns the original Payment without writing anything.

    Returns:
        (payment, created)

    Raises:
        NotFoundError: parcel does not exist
        ConflictError: key reused for another parcel, or parcel already paid
    """
    key = idempotency_key or transaction_id

    existing = await find_by_idempotency_key(db, key)
    if existing is not None:
        if existing.parcel_id != parse_id(parcel_id, "parcel"):
            raise ConflictError("Idempotency key already used for another parcel")
        return existing, False

    parcel = await parcel_lifecycle.get_parcel(db, parcel_id)
    if parcel.payment_status == PaymentStatus.PAID:
        raise ConflictError("Parcel is already paid")

    parcel_key = parcel.id
    paid_at = utcnow()

    try:
        # Re-checks unpaid in the writing statement; a stale read loses here
        marked = await db.execute(
            update(Parcel)
            .where(Parcel.id == parcel_key, Parcel.payment_status == PaymentStatus.UNPAID)
            .values(payment_status=PaymentStatus.PAID)
            .execution_options(synchronize_session=False)
        )
        if marked.rowcount == 0:
            raise ConflictError("Parcel is already paid")

        payment = build_payment(
            parcel_id=parcel_key,
            email=email.lower(),
            user_name=user_name,
            amount=amount,
            transaction_id=transaction_id,
            payment_method=payment_method,
            idempotency_key=key,
            paid_at=paid_at,
            paid_at_string=format_local_time(paid_at),
        )
        db.add(payment)
        log_event(
            db,
            AuditAction.PAYMENT_RECORDED,
            actor_email=email.lower(),
            target_id=parcel_key,
            metadata={"transaction_id": transaction_id, "amount": amount},
        )
        await db.commit()
    except IntegrityError:
        # Lost a race: either a retry with the same key or another checkout of this parcel
        await db.rollback()
        existing = await find_by_idempotency_key(db, key)
        if existing is None or existing.parcel_id != parcel_key:
            raise ConflictError("Parcel is already paid")
        return existing, False
    except Exception:
        await db.rollback()
        raise

    logger.info("Payment %s recorded for parcel %s", payment.id, parcel_key)
    return payment, True


def format_local_time(moment: datetime) -> str:
    """``moment`` as shown to users, e.g. ``18/10/2026, 03:04:05 PM``."""
    return moment.astimezone(ZoneInfo(settings.display_timezone)).strftime("%d/%m/%Y, %I:%M:%S %p")


async def list_payments(db: AsyncSession, email: Optional[str] = None) -> list[Payment]:
    """Payments newest first, optionally for one payer."""
    query = select(Payment)
    if email:
        query = query.where(Payment.email == email.lower())

    result = await db.execute(query.order_by(desc(Payment.paid_at)))
    return list(result.scalars().all())

"""
Tracking trail service.

An append-only log of status events per tracking code.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from courier_backend.app.db.session import utcnow
from courier_backend.app.core.exceptions import MissingFieldError
from courier_backend.app.models.tracking_event import TrackingEvent


async def append_event(
    db: AsyncSession,
    tracking_id: Optional[str],
    status: Optional[str],
    message: Optional[str] = None,
    updated_by: Optional[str] = None,
    parcel_id: Optional[str] = None,
) -> TrackingEvent:
    """
    Append a status event stamped with server time.

    Raises:
        MissingFieldError: tracking_id or status missing
    """
    if not tracking_id or not status:
        raise MissingFieldError("tracking_id and status are required.")

    event = TrackingEvent(
        tracking_id=tracking_id,
        status=status,
        message=message,
        updated_by=updated_by,
        parcel_id=parcel_id,
        time=utcnow(),
    )
    db.add(event)
    await db.commit()
    return event


async def get_trail(db: AsyncSession, tracking_id: str) -> list[TrackingEvent]:
    """Events for ``tracking_id`` oldest first; empty when none exist."""
    result = await db.execute(
        select(TrackingEvent)
        .where(TrackingEvent.tracking_id == tracking_id)
        .order_by(TrackingEvent.time.asc())
    )
    return list(result.scalars().all())

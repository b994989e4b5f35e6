"""
Tracking API Endpoints.

Public endpoints: customers follow a shipment by its tracking code.
"""

from typing import List
from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from courier_backend.app.db.session import get_db
from courier_backend.app.schemas.common import InsertResponse
from courier_backend.app.schemas.tracking import TrackingEventCreate, TrackingEventResponse
from courier_backend.app.services import tracking_trail

router = APIRouter(prefix="/trackings", tags=["Tracking"])


@router.get("/{tracking_id}", response_model=List[TrackingEventResponse])
async def get_tracking_trail(
    tracking_id: str = Path(..., description="Parcel tracking code"),
    db: AsyncSession = Depends(get_db)
):
    """Events for a tracking code, oldest first. Unknown codes yield []."""
    events = await tracking_trail.get_trail(db, tracking_id)
    return [TrackingEventResponse.model_validate(e) for e in events]


@router.post("", response_model=InsertResponse, status_code=status.HTTP_201_CREATED)
async def add_tracking_event(
    event_data: TrackingEventCreate,
    db: AsyncSession = Depends(get_db)
):
    event = await tracking_trail.append_event(db, **event_data.model_dump())
    return InsertResponse(message="Tracking event recorded", inserted_id=event.id)

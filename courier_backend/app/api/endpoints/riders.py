"""
Rider API Endpoints.

Rider applications, approval and availability lookups.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from courier_backend.app.db.session import get_db
from courier_backend.app.core.dependencies import get_current_user
from courier_backend.app.core.guards import require_admin
from courier_backend.app.models.rider_enums import RiderStatus
from courier_backend.app.schemas.common import InsertResponse, UpdateResponse
from courier_backend.app.schemas.rider import RiderCreate, RiderStatusUpdate, RiderResponse
from courier_backend.app.services import rider_directory

router = APIRouter(prefix="/riders", tags=["Riders"])


@router.post("", response_model=InsertResponse, status_code=status.HTTP_201_CREATED)
async def register_rider(
    rider_data: RiderCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Submit a rider application.

    The application starts pending; the rider role is granted on activation.
    """
    rider = await rider_directory.register_rider(db, rider_data.model_dump())
    return InsertResponse(message="Rider application submitted", inserted_id=rider.id)


@router.get("/pending", response_model=List[RiderResponse])
async def list_pending_riders(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    riders = await rider_directory.list_by_status(db, RiderStatus.PENDING)
    return [RiderResponse.model_validate(r) for r in riders]


@router.get("/active", response_model=List[RiderResponse])
async def list_active_riders(db: AsyncSession = Depends(get_db)):
    riders = await rider_directory.list_by_status(db, RiderStatus.ACTIVE)
    return [RiderResponse.model_validate(r) for r in riders]


@router.get("/available", response_model=List[RiderResponse])
async def list_riders_in_district(
    district: Optional[str] = Query(None, description="District to search"),
    db: AsyncSession = Depends(get_db)
):
    riders = await rider_directory.list_by_district(db, district)
    return [RiderResponse.model_validate(r) for r in riders]


@router.patch("/{rider_id}/status", response_model=UpdateResponse)
async def update_rider_status(
    update: RiderStatusUpdate,
    rider_id: str = Path(..., description="Rider ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Approve, reject or re-open a rider application (admin only).

    Activation promotes the matching user to the rider role.
    """
    rider = await rider_directory.set_status(
        db, rider_id, update.status, email=update.email, actor_email=admin["email"]
    )
    return UpdateResponse(message=f"Rider status updated to {rider.status.value}")

"""
Parcel API Endpoints.

Parcel CRUD, rider assignment, delivery status, cash-out and rider task lists.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession

from courier_backend.app.db.session import get_db
from courier_backend.app.core.dependencies import get_current_user, get_optional_user
from courier_backend.app.models.parcel_enums import PaymentStatus, DeliveryStatus
from courier_backend.app.schemas.common import InsertResponse, UpdateResponse, DeleteResponse, MessageResponse
from courier_backend.app.schemas.parcel import (
    ParcelCreate,
    ParcelResponse,
    AssignRiderRequest,
    DeliveryStatusUpdate,
)
from courier_backend.app.services import parcel_lifecycle

router = APIRouter(prefix="/parcels", tags=["Parcels"])
rider_router = APIRouter(prefix="/rider", tags=["Rider Tasks"])


@router.get("", response_model=List[ParcelResponse])
async def list_parcels(
    email: Optional[str] = Query(None, description="Filter by creator email"),
    payment_status: Optional[PaymentStatus] = Query(None),
    delivery_status: Optional[DeliveryStatus] = Query(None),
    assigned_rider_email: Optional[str] = Query(None),
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List parcels newest first.

    Authentication is optional, but a credential that is sent must be valid.
    With no filters every parcel is returned (no pagination).
    """
    parcels = await parcel_lifecycle.list_parcels(
        db,
        created_by=email,
        payment_status=payment_status,
        delivery_status=delivery_status,
        assigned_rider_email=assigned_rider_email,
    )
    return [ParcelResponse.model_validate(p) for p in parcels]


@router.get("/{parcel_id}", response_model=ParcelResponse)
async def get_parcel(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    parcel = await parcel_lifecycle.get_parcel(db, parcel_id)
    return ParcelResponse.model_validate(parcel)


@router.post("", response_model=InsertResponse)
async def create_parcel(
    parcel_data: ParcelCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a parcel.

    The parcel starts unpaid and pending; creation time is set by the server.
    """
    parcel = await parcel_lifecycle.create_parcel(
        db, parcel_data.model_dump(), created_by=current_user["email"]
    )
    return InsertResponse(message="Parcel added successfully!", inserted_id=parcel.id)


@router.patch("/{parcel_id}/assign", response_model=MessageResponse)
async def assign_rider(
    assignment: AssignRiderRequest,
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Assign an active rider to a pending parcel.

    Parcel and rider are updated in one transaction.
    """
    await parcel_lifecycle.assign_rider(
        db,
        parcel_id,
        rider_id=assignment.rider_id,
        rider_name=assignment.rider_name,
        rider_email=assignment.rider_email,
        actor_email=current_user["email"],
    )
    return MessageResponse(message="Rider assigned")


@router.patch("/{parcel_id}/status", response_model=UpdateResponse)
async def update_delivery_status(
    update: DeliveryStatusUpdate,
    parcel_id: str = Path(..., description="Parcel ID"),
    db: AsyncSession = Depends(get_db)
):
    """
    Advance the delivery status by one legal step.

    Returns 409 for any move that is not the next step in
    pending → rider_assigned → in_transit → delivered | service_center_delivered.
    """
    parcel = await parcel_lifecycle.update_delivery_status(db, parcel_id, update.status)
    return UpdateResponse(message=f"Parcel status updated to {parcel.delivery_status.value}")


@router.patch("/{parcel_id}/cashout", response_model=UpdateResponse)
async def cash_out(
    parcel_id: str = Path(..., description="Parcel ID"),
    db: AsyncSession = Depends(get_db)
):
    await parcel_lifecycle.mark_cashed_out(db, parcel_id)
    return UpdateResponse(message="Parcel cashed out")


@router.delete("/{parcel_id}", response_model=DeleteResponse)
async def delete_parcel(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a parcel; a missing parcel is reported, not raised."""
    deleted = await parcel_lifecycle.delete_parcel(db, parcel_id, actor_email=current_user["email"])
    if deleted:
        return DeleteResponse(message="Parcel deleted successfully", deleted=True)
    return DeleteResponse(message="Parcel not found", deleted=False)


@rider_router.get("/parcels", response_model=List[ParcelResponse])
async def rider_pending_parcels(
    email: Optional[str] = Query(None, description="Rider email"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Parcels assigned to the rider that are not yet delivered."""
    parcels = await parcel_lifecycle.list_rider_tasks(db, email)
    return [ParcelResponse.model_validate(p) for p in parcels]


@rider_router.get("/completed-parcels", response_model=List[ParcelResponse])
async def rider_completed_parcels(
    email: Optional[str] = Query(None, description="Rider email"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    parcels = await parcel_lifecycle.list_rider_completed(db, email)
    return [ParcelResponse.model_validate(p) for p in parcels]

"""
Parcel Pydantic schemas.

Defines request and response models for parcel management.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional
from courier_backend.app.models.parcel_enums import PaymentStatus, DeliveryStatus, CashoutStatus


class ParcelCreate(BaseModel):
    """Schema for creating a new parcel. Lifecycle fields are server-owned."""
    parcel_type: str = Field(..., alias="type", min_length=1, max_length=50, description="document / non-document")
    title: str = Field(..., min_length=1, max_length=255)
    weight: Optional[float] = Field(None, gt=0, description="Weight in kilograms")
    cost: float = Field(..., ge=0, description="Delivery charge")
    tracking_id: Optional[str] = Field(None, min_length=1, max_length=64, description="Generated when omitted")
    created_by: Optional[EmailStr] = Field(None, description="Defaults to the authenticated email")

    sender_name: str = Field(..., min_length=1, max_length=255)
    sender_contact: str = Field(..., min_length=1, max_length=50)
    sender_region: str = Field(..., min_length=1, max_length=100)
    sender_center: str = Field(..., min_length=1, max_length=100)
    sender_address: str = Field(..., min_length=1, max_length=500)
    pickup_instruction: Optional[str] = None

    receiver_name: str = Field(..., min_length=1, max_length=255)
    receiver_contact: str = Field(..., min_length=1, max_length=50)
    receiver_region: str = Field(..., min_length=1, max_length=100)
    receiver_center: str = Field(..., min_length=1, max_length=100)
    receiver_address: str = Field(..., min_length=1, max_length=500)
    delivery_instruction: Optional[str] = None

    class Config:
        extra = "forbid"
        populate_by_name = True


class AssignRiderRequest(BaseModel):
    rider_id: str = Field(..., alias="riderId")
    rider_name: str = Field(..., alias="riderName", min_length=1)
    rider_email: EmailStr = Field(..., alias="riderEmail")

    class Config:
        extra = "forbid"
        populate_by_name = True


class DeliveryStatusUpdate(BaseModel):
    status: DeliveryStatus

    class Config:
        extra = "forbid"


class ParcelResponse(BaseModel):
    """Schema for parcel response."""
    id: str
    tracking_id: str
    created_by: str
    parcel_type: str = Field(..., alias="type")
    title: str
    weight: Optional[float]
    cost: float

    sender_name: str
    sender_contact: str
    sender_region: str
    sender_center: str
    sender_address: str
    pickup_instruction: Optional[str]

    receiver_name: str
    receiver_contact: str
    receiver_region: str
    receiver_center: str
    receiver_address: str
    delivery_instruction: Optional[str]

    payment_status: PaymentStatus
    delivery_status: DeliveryStatus
    cashout_status: Optional[CashoutStatus]

    assigned_rider_id: Optional[str]
    assigned_rider_email: Optional[str]
    assigned_rider_name: Optional[str]

    created_at: datetime = Field(..., alias="createdAt")
    picked_at: Optional[datetime]
    delivered_at: Optional[datetime]
    cashed_out_at: Optional[datetime]

    class Config:
        from_attributes = True
        populate_by_name = True

"""
Rider Pydantic schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional
from courier_backend.app.models.rider_enums import RiderStatus, WorkStatus


class RiderCreate(BaseModel):
    """Schema for a rider application."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)
    age: Optional[int] = Field(None, ge=18, le=100)
    region: str = Field(..., min_length=1, max_length=100)
    district: str = Field(..., min_length=1, max_length=100)
    nid: Optional[str] = Field(None, max_length=100, description="National ID number")
    bike_brand: Optional[str] = Field(None, max_length=100)
    bike_registration: Optional[str] = Field(None, max_length=100)

    class Config:
        extra = "forbid"


class RiderStatusUpdate(BaseModel):
    status: RiderStatus
    email: Optional[EmailStr] = Field(None, description="User to promote on activation; defaults to the rider's email")

    class Config:
        extra = "forbid"


class RiderResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    age: Optional[int]
    region: str
    district: str
    nid: Optional[str]
    bike_brand: Optional[str]
    bike_registration: Optional[str]
    status: RiderStatus
    work_status: WorkStatus
    created_at: datetime

    class Config:
        from_attributes = True

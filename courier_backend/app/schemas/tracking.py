"""
Tracking event Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class TrackingEventCreate(BaseModel):
    # Presence of tracking_id/status is checked by the service (400, not 422)
    tracking_id: Optional[str] = Field(None, max_length=64)
    status: Optional[str] = Field(None, max_length=100)
    message: Optional[str] = None
    parcel_id: Optional[str] = None
    updated_by: Optional[str] = Field(None, max_length=255)

    class Config:
        extra = "forbid"


class TrackingEventResponse(BaseModel):
    id: str
    tracking_id: str
    parcel_id: Optional[str]
    status: str
    message: Optional[str]
    updated_by: Optional[str]
    time: datetime

    class Config:
        from_attributes = True

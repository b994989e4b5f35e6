"""
User Pydantic schemas.
"""

from pydantic import AliasChoices, BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional
from courier_backend.app.models.enums import UserRole


class UserLoginRecord(BaseModel):
    """Sent by the client after every successful sign-in."""
    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = Field(None, max_length=1024)

    class Config:
        extra = "forbid"


class UserLoginResponse(BaseModel):
    message: str
    inserted: bool
    inserted_id: Optional[str] = Field(None, alias="insertedId")

    class Config:
        populate_by_name = True


class RoleUpdate(BaseModel):
    # Plain string so out-of-range roles surface as InvalidRole (400)
    role: str


class RoleResponse(BaseModel):
    role: UserRole


class UserResponse(BaseModel):
    id: str
    email: str
    name: Optional[str]
    photo_url: Optional[str]
    # Stored role may be NULL; effective_role reads it as "user"
    role: UserRole = Field(..., validation_alias=AliasChoices("effective_role", "role"))
    created_at: datetime
    last_log_in: Optional[datetime]

    class Config:
        from_attributes = True

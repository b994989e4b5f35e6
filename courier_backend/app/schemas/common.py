"""
Shared response schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional


class MessageResponse(BaseModel):
    message: str


class InsertResponse(BaseModel):
    """Schema returned by create endpoints."""
    message: str
    inserted_id: str = Field(..., alias="insertedId")

    class Config:
        populate_by_name = True


class UpdateResponse(BaseModel):
    """Schema returned by state-change endpoints."""
    message: str
    modified_count: int = Field(1, alias="modifiedCount")

    class Config:
        populate_by_name = True


class DeleteResponse(BaseModel):
    message: str
    deleted: bool

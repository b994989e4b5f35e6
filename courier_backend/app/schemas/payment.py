"""
Payment Pydantic schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional


class PaymentIntentRequest(BaseModel):
    """Amount in the currency's minor unit (paisa for BDT)."""
    amount_in_cent: int = Field(..., alias="amountInCent")

    class Config:
        extra = "forbid"
        populate_by_name = True


class PaymentIntentResponse(BaseModel):
    client_secret: str = Field(..., alias="clientSecret")

    class Config:
        populate_by_name = True


class PaymentCreate(BaseModel):
    """Schema for recording a completed checkout."""
    parcel_id: str = Field(..., alias="parcelId")
    user_email: EmailStr = Field(..., alias="userEmail")
    user_name: Optional[str] = Field(None, alias="userName")
    amount: float = Field(..., gt=0)
    transaction_id: str = Field(..., alias="transactionId", min_length=1, max_length=255)
    payment_method: Optional[str] = Field(None, alias="paymentMethod", max_length=100)

    class Config:
        extra = "forbid"
        populate_by_name = True


class PaymentResponse(BaseModel):
    id: str
    parcel_id: str = Field(..., alias="parcelId")
    email: str
    user_name: Optional[str] = Field(None, alias="userName")
    amount: float
    transaction_id: str = Field(..., alias="transactionId")
    payment_method: Optional[str] = Field(None, alias="paymentMethod")
    paid_at: datetime
    paid_at_string: Optional[str] = None

    class Config:
        from_attributes = True
        populate_by_name = True

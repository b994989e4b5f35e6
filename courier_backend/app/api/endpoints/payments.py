"""
Payment API Endpoints.

Payment intents are created with the gateway; completed checkouts are
recorded against their parcel.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Header, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from courier_backend.app.db.session import get_db
from courier_backend.app.core.dependencies import get_current_user
from courier_backend.app.schemas.common import InsertResponse
from courier_backend.app.schemas.payment import (
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentCreate,
    PaymentResponse,
)
from courier_backend.app.services import payments
from courier_backend.app.services.payment_gateway import StripePaymentGateway, get_payment_gateway

router = APIRouter(tags=["Payments"])


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    request: PaymentIntentRequest,
    current_user: dict = Depends(get_current_user),
    gateway: StripePaymentGateway = Depends(get_payment_gateway)
):
    """
    Create a card payment intent for ``amountInCent``.

    The client completes the payment with the returned secret.
    """
    client_secret = await gateway.create_payment_intent(request.amount_in_cent)
    return PaymentIntentResponse(client_secret=client_secret)


@router.get("/payments", response_model=List[PaymentResponse])
async def list_payments(
    email: Optional[str] = Query(None, description="Payer email"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    records = await payments.list_payments(db, email)
    return [PaymentResponse.model_validate(p) for p in records]


@router.post("/payments", response_model=InsertResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    payment_data: PaymentCreate,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=255),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a completed checkout and mark the parcel paid.

    Retries carrying the same Idempotency-Key (or, without one, the same
    transactionId) return the original payment with 200.
    """
    payment, created = await payments.record_payment(
        db,
        parcel_id=payment_data.parcel_id,
        email=payment_data.user_email,
        user_name=payment_data.user_name,
        amount=payment_data.amount,
        transaction_id=payment_data.transaction_id,
        payment_method=payment_data.payment_method,
        idempotency_key=idempotency_key,
    )
    if created:
        return InsertResponse(message="Payment recorded and parcel marked as paid", inserted_id=payment.id)

    replay = InsertResponse(message="Payment already recorded", inserted_id=payment.id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=replay.model_dump(by_alias=True))

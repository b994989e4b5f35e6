"""
Payment database model.

One row per successful checkout, at most one per parcel. ``idempotency_key``
makes client retries of the same checkout resolve to the original row.
"""

from sqlalchemy import Column, String, Float, DateTime
from courier_backend.app.db.session import Base, new_id, utcnow


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(32), primary_key=True, default=new_id)
    # At most one payment per parcel
    parcel_id = Column(String(32), unique=True, nullable=False)

    email = Column(String(255), nullable=False, index=True)
    user_name = Column(String(255), nullable=True)
    amount = Column(Float, nullable=False)
    transaction_id = Column(String(255), nullable=False)
    payment_method = Column(String(100), nullable=True)
    idempotency_key = Column(String(255), unique=True, nullable=False)

    paid_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    # paid_at rendered in the display timezone for payment-history screens
    paid_at_string = Column(String(64), nullable=True)

    def __repr__(self):
        return f"<Payment(id={self.id}, parcel_id={self.parcel_id}, amount={self.amount})>"

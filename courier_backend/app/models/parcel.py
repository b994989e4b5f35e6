"""
Parcel database model.

A parcel is the aggregate root of the delivery lifecycle. Payments and
tracking events reference it by id but are not owned by it.
"""

from sqlalchemy import Column, String, Float, DateTime, Enum, Text
from courier_backend.app.db.session import Base, new_id, utcnow
from courier_backend.app.models.parcel_enums import PaymentStatus, DeliveryStatus, CashoutStatus


class Parcel(Base):
    """
    Parcel model for the courier platform.

    Rider identity is denormalised onto the parcel at assignment time so
    rider task lists can be served from this table alone.
    """
    __tablename__ = "parcels"

    id = Column(String(32), primary_key=True, default=new_id)

    # External tracking code shown to customers
    tracking_id = Column(String(64), unique=True, nullable=False, index=True)
    created_by = Column(String(255), nullable=False, index=True)

    # Shipment description
    parcel_type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    weight = Column(Float, nullable=True)
    cost = Column(Float, nullable=False)

    # Sender
    sender_name = Column(String(255), nullable=False)
    sender_contact = Column(String(50), nullable=False)
    sender_region = Column(String(100), nullable=False)
    sender_center = Column(String(100), nullable=False)
    sender_address = Column(String(500), nullable=False)
    pickup_instruction = Column(Text, nullable=True)

    # Receiver
    receiver_name = Column(String(255), nullable=False)
    receiver_contact = Column(String(50), nullable=False)
    receiver_region = Column(String(100), nullable=False)
    receiver_center = Column(String(100), nullable=False)
    receiver_address = Column(String(500), nullable=False)
    delivery_instruction = Column(Text, nullable=True)

    # Lifecycle
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False, index=True)
    delivery_status = Column(Enum(DeliveryStatus), default=DeliveryStatus.PENDING, nullable=False, index=True)
    cashout_status = Column(Enum(CashoutStatus), nullable=True)

    # Assignment (denormalised from Rider)
    assigned_rider_id = Column(String(32), nullable=True, index=True)
    assigned_rider_email = Column(String(255), nullable=True, index=True)
    assigned_rider_name = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    picked_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cashed_out_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Parcel(id={self.id}, tracking_id='{self.tracking_id}', status='{self.delivery_status.value}')>"

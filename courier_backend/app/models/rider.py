"""
Rider database model.

A rider starts as a pending application and becomes assignable once an
admin activates it.
"""

from sqlalchemy import Column, String, Integer, DateTime, Enum
from courier_backend.app.db.session import Base, new_id, utcnow
from courier_backend.app.models.rider_enums import RiderStatus, WorkStatus


class Rider(Base):
    __tablename__ = "riders"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=False)
    age = Column(Integer, nullable=True)
    region = Column(String(100), nullable=False)
    district = Column(String(100), nullable=False, index=True)
    nid = Column(String(100), nullable=True)
    bike_brand = Column(String(100), nullable=True)
    bike_registration = Column(String(100), nullable=True)

    status = Column(Enum(RiderStatus), default=RiderStatus.PENDING, nullable=False, index=True)
    work_status = Column(Enum(WorkStatus), default=WorkStatus.IDLE, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Rider(id={self.id}, email='{self.email}', status='{self.status.value}')>"

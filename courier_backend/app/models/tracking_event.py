"""
Tracking event database model.

Append-only: rows are inserted and read, never updated or deleted.
"""

from sqlalchemy import Column, String, DateTime, Text
from courier_backend.app.db.session import Base, new_id, utcnow


class TrackingEvent(Base):
    __tablename__ = "tracking_events"

    id = Column(String(32), primary_key=True, default=new_id)
    tracking_id = Column(String(64), nullable=False, index=True)
    parcel_id = Column(String(32), nullable=True, index=True)
    status = Column(String(100), nullable=False)
    message = Column(Text, nullable=True)
    updated_by = Column(String(255), nullable=True)
    time = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<TrackingEvent(tracking_id='{self.tracking_id}', status='{self.status}')>"

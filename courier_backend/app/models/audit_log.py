"""
Audit Log Database Model.

Tracks privileged and cross-entity actions for reconciliation and review.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from courier_backend.app.db.session import Base, utcnow


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - ROLE_CHANGED / RIDER_STATUS_CHANGED
    - RIDER_ASSIGNED
    - PAYMENT_RECORDED / PARCEL_CASHED_OUT
    - PARCEL_DELETED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for unauthenticated routes)
    actor_email = Column(String(255), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # Entity the action applied to
    target_id = Column(String(32), index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_email}, target={self.target_id})>"

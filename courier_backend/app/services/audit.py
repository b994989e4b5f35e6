"""
Audit logging service for privileged and cross-entity actions.

Entries are added to the caller's session so they commit, or roll back,
together with the change they describe.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession

from courier_backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    ROLE_CHANGED = "ROLE_CHANGED"
    RIDER_STATUS_CHANGED = "RIDER_STATUS_CHANGED"
    RIDER_ASSIGNED = "RIDER_ASSIGNED"
    PAYMENT_RECORDED = "PAYMENT_RECORDED"
    PARCEL_CASHED_OUT = "PARCEL_CASHED_OUT"
    PARCEL_DELETED = "PARCEL_DELETED"


def log_event(
    db: AsyncSession,
    action: str,
    actor_email: Optional[str] = None,
    target_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an audit entry to the current transaction.

    Args:
        db: Database session (caller commits)
        action: Action being performed (use AuditAction constants)
        actor_email: Email of the authenticated user, if any
        target_id: ID of the entity acted upon
        metadata: Additional context as JSON

    Returns:
        Pending AuditLog instance
    """
    audit_log = AuditLog(
        actor_email=actor_email,
        action=action,
        target_id=target_id,
        meta_data=metadata,
    )
    db.add(audit_log)
    return audit_log

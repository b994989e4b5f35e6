"""
Rider status enumerations.
"""

import enum


class RiderStatus(str, enum.Enum):
    """
    Rider application status.

    New applications start as PENDING; an admin moves them to
    ACTIVE or REJECTED.
    """
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"


class WorkStatus(str, enum.Enum):
    IDLE = "idle"
    IN_DELIVERY = "in_delivery"

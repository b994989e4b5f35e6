"""
Parcel status enumerations.
"""

import enum


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class DeliveryStatus(str, enum.Enum):
    """
    Delivery status enumeration.

    Status flow:
        pending → rider_assigned → in_transit → delivered
                                              → service_center_delivered
    """
    PENDING = "pending"
    RIDER_ASSIGNED = "rider_assigned"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    SERVICE_CENTER_DELIVERED = "service_center_delivered"


class CashoutStatus(str, enum.Enum):
    CASHED_OUT = "cashed_out"


DELIVERY_TRANSITIONS = {
    DeliveryStatus.PENDING: {DeliveryStatus.RIDER_ASSIGNED},
    DeliveryStatus.RIDER_ASSIGNED: {DeliveryStatus.IN_TRANSIT},
    DeliveryStatus.IN_TRANSIT: {
        DeliveryStatus.DELIVERED,
        DeliveryStatus.SERVICE_CENTER_DELIVERED,
    },
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.SERVICE_CENTER_DELIVERED: set(),
}

OPEN_DELIVERY_STATUSES = (DeliveryStatus.RIDER_ASSIGNED, DeliveryStatus.IN_TRANSIT)
COMPLETED_DELIVERY_STATUSES = (
    DeliveryStatus.DELIVERED,
    DeliveryStatus.SERVICE_CENTER_DELIVERED,
)

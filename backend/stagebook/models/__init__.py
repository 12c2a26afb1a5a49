from .user import User, UserRole
from .booking import Booking
from .booking_status import BookingStatus
from .rider import RiderTemplate, RIDER_FIELDS, RIDER_SECTIONS
from .rider_acknowledgment import (
    RiderAcknowledgment,
    RiderAcknowledgmentStatus,
    RiderModification,
    ModificationStatus,
)
from .contract import Contract, ContractEvent, ContractStatus
from .notification import Notification, NotificationType
from .outbox import OutboxEvent

__all__ = [
    "User",
    "UserRole",
    "Booking",
    "BookingStatus",
    "RiderTemplate",
    "RIDER_FIELDS",
    "RIDER_SECTIONS",
    "RiderAcknowledgment",
    "RiderAcknowledgmentStatus",
    "RiderModification",
    "ModificationStatus",
    "Contract",
    "ContractStatus",
    "ContractEvent",
    "Notification",
    "NotificationType",
    "OutboxEvent",
]

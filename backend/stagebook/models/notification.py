from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from .base import BaseModel


class NotificationType(str, enum.Enum):
    BOOKING_CREATED = "booking_created"
    BOOKING_STATUS_UPDATED = "booking_status_updated"
    RIDER_SHARED = "rider_shared"
    RIDER_ACKNOWLEDGED = "rider_acknowledged"
    RIDER_MODIFICATIONS_PROPOSED = "rider_modifications_proposed"
    RIDER_RESOLVED = "rider_resolved"
    RIDER_REMINDER = "rider_reminder"
    CONTRACT_GENERATED = "contract_generated"
    CONTRACT_SENT = "contract_sent"
    CONTRACT_SIGNED = "contract_signed"
    CONTRACT_REJECTED = "contract_rejected"
    CONTRACT_CANCELLED = "contract_cancelled"


class Notification(BaseModel):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(NotificationType), nullable=False)
    message = Column(String, nullable=False)
    link = Column(String, nullable=False)
    is_read = Column(Boolean, default=False)
    timestamp = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", backref="notifications")

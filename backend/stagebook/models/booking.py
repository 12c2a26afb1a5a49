# backend/stagebook/models/booking.py

from sqlalchemy import Column, Integer, Date, DateTime, Numeric, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel
from .booking_status import BookingStatus
from .types import CaseInsensitiveEnum


class Booking(BaseModel):
    __tablename__ = "bookings"

    id             = Column(Integer, primary_key=True, index=True)
    artist_id      = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    venue_id       = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_date     = Column(Date, nullable=False, index=True)
    event_time     = Column(String(50), nullable=True)
    venue_name     = Column(String(255), nullable=False)
    venue_address  = Column(Text, nullable=True)
    total_fee      = Column(Numeric(10, 2), nullable=True)
    deposit_amount = Column(Numeric(10, 2), nullable=True)
    event_details  = Column(Text, nullable=True)
    status         = Column(
        CaseInsensitiveEnum(BookingStatus, name="bookingstatus"),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    status_changed_at = Column(DateTime, nullable=True)
    rider_template_id = Column(
        Integer,
        ForeignKey("rider_templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    artist         = relationship("User", foreign_keys=[artist_id])
    venue          = relationship("User", foreign_keys=[venue_id])
    rider_template = relationship("RiderTemplate")
    rider_acknowledgment = relationship(
        "RiderAcknowledgment", back_populates="booking", uselist=False
    )
    contracts      = relationship(
        "Contract", back_populates="booking", order_by="Contract.version"
    )

import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    ForeignKey,
    String,
    Text,
    DateTime,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import CaseInsensitiveEnum


class RiderAcknowledgmentStatus(str, enum.Enum):
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    MODIFICATIONS_PROPOSED = "modifications_proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ModificationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"


class RiderAcknowledgment(BaseModel):
    """Negotiation state of a rider shared for one booking."""

    __tablename__ = "rider_acknowledgments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id"), nullable=False, unique=True, index=True
    )
    rider_template_id = Column(
        Integer, ForeignKey("rider_templates.id", ondelete="SET NULL"), nullable=True
    )
    artist_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    venue_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(
        CaseInsensitiveEnum(RiderAcknowledgmentStatus, name="rideracknowledgmentstatus"),
        default=RiderAcknowledgmentStatus.PENDING,
        nullable=False,
        index=True,
    )
    notes = Column(Text, nullable=True)
    acknowledged_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    # Optimistic lock; a stale flush raises StaleDataError
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    booking = relationship("Booking", back_populates="rider_acknowledgment")
    rider_template = relationship("RiderTemplate")
    artist = relationship("User", foreign_keys=[artist_id])
    venue = relationship("User", foreign_keys=[venue_id])
    modifications = relationship(
        "RiderModification",
        back_populates="acknowledgment",
        order_by="RiderModification.sequence",
        cascade="all, delete-orphan",
    )


class RiderModification(BaseModel):
    """One entry of the append-only modification log."""

    __tablename__ = "rider_modifications"
    __table_args__ = (
        UniqueConstraint("acknowledgment_id", "sequence", name="uq_rider_modification_sequence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    acknowledgment_id = Column(
        Integer,
        ForeignKey("rider_acknowledgments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence = Column(Integer, nullable=False)
    field_name = Column(String(100), nullable=False)
    original_value = Column(JSON, nullable=True)
    proposed_value = Column(Text, nullable=False)
    reason = Column(Text, nullable=False)
    proposed_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    proposed_by_party = Column(String(20), nullable=False)
    status = Column(
        CaseInsensitiveEnum(ModificationStatus, name="modificationstatus"),
        default=ModificationStatus.PENDING,
        nullable=False,
    )
    proposed_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    responded_at = Column(DateTime, nullable=True)

    acknowledgment = relationship("RiderAcknowledgment", back_populates="modifications")

import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    ForeignKey,
    String,
    Text,
    DateTime,
    LargeBinary,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, deferred

from ..database import Base
from .base import BaseModel
from .types import CaseInsensitiveEnum


class ContractStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_SIGNATURES = "pending_signatures"
    SIGNED = "signed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class Contract(BaseModel):
    __tablename__ = "contracts"
    __table_args__ = (
        UniqueConstraint("booking_id", "version", name="uq_contract_booking_version"),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    artist_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    venue_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rider_template_id = Column(
        Integer, ForeignKey("rider_templates.id", ondelete="SET NULL"), nullable=True
    )
    version = Column(Integer, nullable=False, default=1)
    contract_type = Column(String(50), nullable=False, default="performance")
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    # Rendered document; loaded only when downloaded
    pdf_data = deferred(Column(LargeBinary, nullable=True))
    status = Column(
        CaseInsensitiveEnum(ContractStatus, name="contractstatus"),
        default=ContractStatus.DRAFT,
        nullable=False,
        index=True,
    )
    artist_signed_at = Column(DateTime, nullable=True)
    venue_signed_at = Column(DateTime, nullable=True)
    artist_signature = Column(Text, nullable=True)
    venue_signature = Column(Text, nullable=True)
    rejected_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    lock_version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": lock_version}

    booking = relationship("Booking", back_populates="contracts")
    rider_template = relationship("RiderTemplate")


class ContractEvent(Base):
    """Append-only audit entry for one action on a contract version."""

    __tablename__ = "contract_events"

    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(Integer, ForeignKey("contracts.id"), nullable=False, index=True)
    action = Column(String(32), nullable=False)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    party = Column(String(16), nullable=True)
    at = Column(DateTime, nullable=False, default=datetime.utcnow)
    details = Column(JSON, nullable=True)

    contract = relationship("Contract")

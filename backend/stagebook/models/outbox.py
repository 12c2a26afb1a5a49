from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime

from ..database import Base


class OutboxEvent(Base):
    """Durable queue of channel deliveries (email / sms)."""

    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, index=True)
    topic = Column(String(64), nullable=False, index=True)
    payload_json = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    delivered_at = Column(DateTime, nullable=True, index=True)
    attempt_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    due_at = Column(DateTime, nullable=True, index=True)

from __future__ import annotations

import json
from datetime import datetime, timedelta, date
import logging
from decimal import Decimal
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.outbox import OutboxEvent


logger = logging.getLogger(__name__)

EMAIL_TOPIC = "email"
SMS_TOPIC = "sms"


def _json_default(o: Any):
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    if isinstance(o, Decimal):
        return float(o)
    return str(o)


def enqueue_outbox(db: Session, topic: str, payload: dict[str, Any], due_at: Optional[datetime] = None) -> int:
    """Insert an outbox event row for reliable channel delivery.

    Returns the inserted id (0 if the insert failed).
    """
    payload_str = json.dumps(payload, default=_json_default, separators=(",", ":"))
    try:
        event = OutboxEvent(topic=topic, payload_json=payload_str, due_at=due_at)
        db.add(event)
        db.commit()
        logger.info("outbox_enqueue topic=%s id=%s bytes=%s", topic, event.id, len(payload_str))
        return int(event.id or 0)
    except Exception as exc:
        db.rollback()
        logger.warning("outbox_enqueue_failed topic=%s err=%s", topic, exc)
        return 0


def _default_senders() -> dict[str, Callable[[dict[str, Any]], None]]:
    from .email import send_email
    from .sms import send_sms

    return {
        EMAIL_TOPIC: lambda p: send_email(p["to"], p["subject"], p["body"]),
        SMS_TOPIC: lambda p: send_sms(p["to"], p["body"]),
    }


def _backoff(attempt: int) -> timedelta:
    # 30s, 60s, 120s, ... capped at one hour
    return timedelta(seconds=min(30 * (2 ** max(attempt - 1, 0)), 3600))


def deliver_pending(
    db: Session,
    now: Optional[datetime] = None,
    senders: Optional[dict[str, Callable[[dict[str, Any]], None]]] = None,
    max_batch: Optional[int] = None,
) -> int:
    """Deliver due outbox events and return how many were sent.

    Failed sends bump ``attempt_count`` and are rescheduled with backoff until
    ``OUTBOX_MAX_ATTEMPTS`` is reached; after that the row is left undelivered
    with its ``last_error`` for inspection.
    """
    now = now or datetime.utcnow()
    senders = senders or _default_senders()
    limit = max_batch or settings.OUTBOX_MAX_BATCH
    rows = (
        db.query(OutboxEvent)
        .filter(
            OutboxEvent.delivered_at.is_(None),
            OutboxEvent.attempt_count < settings.OUTBOX_MAX_ATTEMPTS,
            (OutboxEvent.due_at.is_(None)) | (OutboxEvent.due_at <= now),
        )
        .order_by(OutboxEvent.created_at.asc(), OutboxEvent.id.asc())
        .limit(limit)
        .all()
    )
    delivered = 0
    for row in rows:
        sender = senders.get(row.topic)
        if sender is None:
            logger.warning("outbox_unknown_topic id=%s topic=%s", row.id, row.topic)
            row.attempt_count = settings.OUTBOX_MAX_ATTEMPTS
            row.last_error = "unknown_topic"
            db.commit()
            continue
        try:
            payload = json.loads(row.payload_json)
        except json.JSONDecodeError:
            row.attempt_count = settings.OUTBOX_MAX_ATTEMPTS
            row.last_error = "invalid_payload"
            db.commit()
            continue
        try:
            sender(payload)
        except Exception as exc:
            row.attempt_count = (row.attempt_count or 0) + 1
            row.last_error = str(exc)[:500]
            row.due_at = now + _backoff(row.attempt_count)
            db.commit()
            logger.warning(
                "outbox_attempt_failed id=%s topic=%s attempt=%s err=%s",
                row.id,
                row.topic,
                row.attempt_count,
                exc,
            )
            continue
        row.delivered_at = now
        row.attempt_count = (row.attempt_count or 0) + 1
        db.commit()
        delivered += 1
        logger.info("outbox_delivered id=%s topic=%s", row.id, row.topic)
    return delivered

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..crud import crud_booking, crud_rider
from ..database import SessionLocal
from ..models import BookingStatus, NotificationType, RiderAcknowledgmentStatus
from ..notifications.templates import notification_path
from ..utils.errors import WorkflowError
from ..utils.notifications import Notifier, OutboxNotifier
from ..utils.outbox import deliver_pending
from . import booking_lifecycle
from .parties import Party, user_id_for

logger = logging.getLogger(__name__)


def handle_booking_auto_completion(
    db: Session,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> dict:
    """Complete confirmed bookings once the event date is well in the past."""
    now = now or datetime.utcnow()
    notifier = notifier or OutboxNotifier(db)
    cutoff = (now - timedelta(hours=settings.BOOKING_AUTO_COMPLETE_HOURS)).date()
    results = {"auto_completed": 0, "auto_complete_conflicts": 0}
    for booking in crud_booking.get_confirmed_bookings_before(db, cutoff):
        try:
            booking_lifecycle.transition(
                db, booking, Party.SYSTEM, BookingStatus.COMPLETED, notifier
            )
        except WorkflowError as exc:
            # Someone else moved it (e.g. cancelled) since we read it
            logger.info("Auto-complete skipped for booking %s: %s", booking.id, exc.message)
            results["auto_complete_conflicts"] += 1
            continue
        results["auto_completed"] += 1
    return results


def _reminder_already_sent(
    db: Session, user_id: int, link: str, since: datetime
) -> bool:
    return (
        db.query(models.Notification.id)
        .filter(
            models.Notification.user_id == user_id,
            models.Notification.type == NotificationType.RIDER_REMINDER,
            models.Notification.link == link,
            models.Notification.timestamp >= since,
        )
        .first()
        is not None
    )


def handle_rider_reminders(
    db: Session,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> dict:
    """Remind whoever owes a rider response on the configured day marks.

    Pending riders wait on the venue, counted from when the rider was shared.
    Open proposals wait on the party that did not make the latest proposal,
    counted from that proposal.
    """
    now = now or datetime.utcnow()
    notifier = notifier or OutboxNotifier(db)
    reminder_days = sorted(set(settings.RIDER_REMINDER_DAYS))
    results = {"rider_reminders": 0}
    if not reminder_days:
        return results

    acks = (
        db.query(models.RiderAcknowledgment)
        .filter(
            models.RiderAcknowledgment.status.in_(
                [
                    RiderAcknowledgmentStatus.PENDING,
                    RiderAcknowledgmentStatus.MODIFICATIONS_PROPOSED,
                ]
            )
        )
        .all()
    )
    for ack in acks:
        if ack.status == RiderAcknowledgmentStatus.PENDING:
            waiting_since = ack.created_at
            recipient_id = ack.venue_id
        else:
            last = crud_rider.get_last_modification(db, ack.id)
            if last is None:
                continue
            waiting_since = last.proposed_at
            recipient_id = user_id_for(ack, Party(last.proposed_by_party).counterpart)
        if waiting_since is None:
            continue
        elapsed_days = (now - waiting_since).days
        if elapsed_days not in reminder_days:
            continue
        payload = {
            "booking_id": ack.booking_id,
            "acknowledgment_id": ack.id,
            "days": elapsed_days,
        }
        link = notification_path(NotificationType.RIDER_REMINDER, payload)
        if _reminder_already_sent(db, recipient_id, link, waiting_since + timedelta(days=elapsed_days)):
            continue
        notifier.notify(recipient_id, NotificationType.RIDER_REMINDER, payload)
        results["rider_reminders"] += 1
    return results


def handle_outbox_delivery(db: Session, now: Optional[datetime] = None) -> dict:
    return {"outbox_delivered": deliver_pending(db, now=now)}


def run_maintenance() -> dict:
    """Run all operational maintenance tasks once and return a summary.

    Each task gets its own short-lived DB session to minimize how long a
    connection is held.
    """
    with SessionLocal() as db:
        auto = handle_booking_auto_completion(db)

    with SessionLocal() as db:
        reminders = handle_rider_reminders(db)

    with SessionLocal() as db:
        outbox = handle_outbox_delivery(db)

    return {**auto, **reminders, **outbox}

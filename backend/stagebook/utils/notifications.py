"""Notification collaborator used by the workflows.

Workflows only see the :class:`Notifier` protocol. The production
implementation stores an in-app notification and queues email / SMS
deliveries in the outbox; delivery happens later in ``deliver_pending``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

from sqlalchemy.orm import Session

from .. import models
from ..models import NotificationType
from ..notifications.templates import (
    email_body,
    email_subject,
    format_notification_message,
    notification_path,
)
from .outbox import EMAIL_TOPIC, SMS_TOPIC, enqueue_outbox
from .sms import sms_enabled

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, recipient_id: int, kind: NotificationType | str, payload: Mapping[str, Any]) -> None:
        ...


class OutboxNotifier:
    """Persist an in-app notification and enqueue channel deliveries.

    Failures are logged and never propagate to the caller; a transition that
    already committed must not be reported as failed because a notification
    could not be written.
    """

    def __init__(self, db: Session):
        self.db = db

    def notify(self, recipient_id: int, kind: NotificationType | str, payload: Mapping[str, Any]) -> None:
        from ..crud import crud_notification

        try:
            ntype = NotificationType(kind)
            user = self.db.query(models.User).filter(models.User.id == recipient_id).first()
            if user is None:
                logger.error("Notification %s skipped: user %s missing", ntype.value, recipient_id)
                return
            message = format_notification_message(ntype, payload)
            crud_notification.create_notification(
                self.db,
                user_id=user.id,
                type=ntype,
                message=message,
                link=notification_path(ntype, payload),
            )
            enqueue_outbox(
                self.db,
                EMAIL_TOPIC,
                {
                    "to": user.email,
                    "subject": email_subject(ntype, payload),
                    "body": email_body(ntype, payload, user.display_name),
                    "kind": ntype.value,
                },
            )
            if user.phone_number and sms_enabled():
                enqueue_outbox(
                    self.db,
                    SMS_TOPIC,
                    {"to": user.phone_number, "body": message, "kind": ntype.value},
                )
            logger.info("Notify %s: %s", user.email, message)
        except Exception as exc:
            self.db.rollback()
            logger.warning("Notification %s to user %s failed: %s", kind, recipient_id, exc)


def notify_parties(
    notifier: Notifier,
    recipient_ids: list[int],
    kind: NotificationType,
    payload: Mapping[str, Any],
) -> None:
    """Send the same notification to several users, once each."""
    for recipient_id in dict.fromkeys(recipient_ids):
        notifier.notify(recipient_id, kind, payload)

import json
from datetime import datetime, timedelta

from stagebook.crud import crud_notification
from stagebook.models import NotificationType, OutboxEvent
from stagebook.notifications.templates import (
    email_subject,
    format_notification_message,
    notification_path,
)
from stagebook.utils import notifications as notifications_module
from stagebook.utils.notifications import OutboxNotifier, notify_parties
from stagebook.utils.outbox import EMAIL_TOPIC, SMS_TOPIC, deliver_pending, enqueue_outbox


def test_outbox_notifier_stores_notification_and_queues_email(db, artist):
    OutboxNotifier(db).notify(
        artist.id,
        NotificationType.RIDER_MODIFICATIONS_PROPOSED,
        {"booking_id": 7, "acknowledgment_id": 3, "field_name": "pa_system_required"},
    )
    [notif] = crud_notification.get_notifications_for_user(db, artist.id)
    assert notif.type == NotificationType.RIDER_MODIFICATIONS_PROPOSED
    assert notif.link == "/bookings/7/rider-acknowledgment"
    assert "pa_system_required" in notif.message

    [event] = db.query(OutboxEvent).all()
    assert event.topic == EMAIL_TOPIC
    payload = json.loads(event.payload_json)
    assert payload["to"] == "artist@test.com"
    assert payload["subject"] == "Rider changes proposed for booking #7"
    assert payload["body"].startswith("Hi The Echoes,")
    assert "/bookings/7/rider-acknowledgment" in payload["body"]


def test_outbox_notifier_queues_sms_when_enabled(db, venue, monkeypatch):
    venue.phone_number = "+27820000000"
    db.commit()
    monkeypatch.setattr(notifications_module, "sms_enabled", lambda: True)
    OutboxNotifier(db).notify(venue.id, NotificationType.RIDER_SHARED, {"booking_id": 1})
    topics = sorted(e.topic for e in db.query(OutboxEvent).all())
    assert topics == [EMAIL_TOPIC, SMS_TOPIC]


def test_outbox_notifier_never_raises(db):
    OutboxNotifier(db).notify(12345, NotificationType.BOOKING_CREATED, {"booking_id": 1})
    OutboxNotifier(db).notify(12345, "not-a-kind", {"booking_id": 1})
    assert db.query(OutboxEvent).count() == 0


def test_notify_parties_sends_once_per_user(notifier):
    notify_parties(notifier, [1, 2, 1], NotificationType.RIDER_RESOLVED, {"booking_id": 5})
    assert [c.args[0] for c in notifier.notify.call_args_list] == [1, 2]


def test_deliver_pending_sends_and_marks_delivered(db):
    sent = []
    enqueue_outbox(db, EMAIL_TOPIC, {"to": "a@test.com", "subject": "S", "body": "B"})
    enqueue_outbox(db, SMS_TOPIC, {"to": "+27820000000", "body": "B"})

    delivered = deliver_pending(
        db,
        senders={EMAIL_TOPIC: sent.append, SMS_TOPIC: sent.append},
    )
    assert delivered == 2
    assert [p["to"] for p in sent] == ["a@test.com", "+27820000000"]
    assert all(e.delivered_at is not None for e in db.query(OutboxEvent).all())
    assert deliver_pending(db, senders={EMAIL_TOPIC: sent.append, SMS_TOPIC: sent.append}) == 0


def test_deliver_pending_retries_with_backoff(db):
    def broken(payload):
        raise RuntimeError("smtp down")

    event_id = enqueue_outbox(db, EMAIL_TOPIC, {"to": "a@test.com", "subject": "S", "body": "B"})
    now = datetime(2026, 3, 1, 12, 0)
    assert deliver_pending(db, now=now, senders={EMAIL_TOPIC: broken}) == 0
    event = db.get(OutboxEvent, event_id)
    assert event.attempt_count == 1
    assert event.last_error == "smtp down"
    assert event.due_at == now + timedelta(seconds=30)

    # Not due yet
    assert deliver_pending(db, now=now + timedelta(seconds=10), senders={EMAIL_TOPIC: lambda p: None}) == 0
    assert deliver_pending(db, now=now + timedelta(seconds=31), senders={EMAIL_TOPIC: lambda p: None}) == 1
    db.refresh(event)
    assert event.delivered_at is not None


def test_deliver_pending_parks_unknown_topics(db):
    event_id = enqueue_outbox(db, "pigeon", {"to": "roof"})
    assert deliver_pending(db, senders={EMAIL_TOPIC: lambda p: None}) == 0
    event = db.get(OutboxEvent, event_id)
    assert event.last_error == "unknown_topic"
    assert event.delivered_at is None


def test_message_templates():
    payload = {"booking_id": 4, "contract_id": 9, "version": 2}
    assert format_notification_message(NotificationType.CONTRACT_SENT, payload) == (
        "Contract v2 for booking #4 is ready to sign"
    )
    assert notification_path(NotificationType.CONTRACT_SENT, payload) == "/bookings/4/contracts/9"
    assert notification_path(NotificationType.BOOKING_CREATED, payload) == "/bookings/4"
    assert email_subject(NotificationType.RIDER_RESOLVED, {"booking_id": 4, "outcome": "accepted"}) == (
        "Rider accepted for booking #4"
    )
    assert format_notification_message(NotificationType.RIDER_REMINDER, {"booking_id": 4, "days": 1}).endswith(
        "for 1 day"
    )

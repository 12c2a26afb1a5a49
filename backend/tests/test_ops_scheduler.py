from datetime import datetime, timedelta

from stagebook.models import BookingStatus, Notification, NotificationType
from stagebook.services import booking_lifecycle, ops_scheduler, rider_workflow
from stagebook.utils.notifications import OutboxNotifier


def test_confirmed_booking_auto_completes_after_event(db, confirmed_booking, artist, venue, notifier):
    # Event date is 2026-02-15; completion waits BOOKING_AUTO_COMPLETE_HOURS (12)
    early = ops_scheduler.handle_booking_auto_completion(db, now=datetime(2026, 2, 15, 9, 0), notifier=notifier)
    assert early["auto_completed"] == 0
    db.refresh(confirmed_booking)
    assert confirmed_booking.status == BookingStatus.CONFIRMED

    result = ops_scheduler.handle_booking_auto_completion(db, now=datetime(2026, 2, 16, 1, 0), notifier=notifier)
    assert result == {"auto_completed": 1, "auto_complete_conflicts": 0}
    db.refresh(confirmed_booking)
    assert confirmed_booking.status == BookingStatus.COMPLETED
    recipients = {c.args[0] for c in notifier.notify.call_args_list}
    assert recipients == {artist.id, venue.id}


def test_pending_and_cancelled_bookings_are_left_alone(db, booking, artist, notifier):
    later = datetime(2026, 3, 1)
    assert ops_scheduler.handle_booking_auto_completion(db, now=later, notifier=notifier)["auto_completed"] == 0
    booking_lifecycle.update_status(db, booking.id, artist.id, BookingStatus.CANCELLED, notifier)
    assert ops_scheduler.handle_booking_auto_completion(db, now=later, notifier=notifier)["auto_completed"] == 0
    db.refresh(booking)
    assert booking.status == BookingStatus.CANCELLED


def test_pending_rider_reminds_venue_on_reminder_days(db, booking, artist, venue, notifier):
    ack = rider_workflow.share_rider(db, booking.id, artist.id, notifier)
    notifier.reset_mock()
    shared_at = ack.created_at

    ops_scheduler.handle_rider_reminders(db, now=shared_at + timedelta(days=2, hours=1), notifier=notifier)
    notifier.notify.assert_not_called()

    result = ops_scheduler.handle_rider_reminders(db, now=shared_at + timedelta(days=3, hours=1), notifier=notifier)
    assert result == {"rider_reminders": 1}
    recipient, kind, payload = notifier.notify.call_args.args
    assert recipient == venue.id
    assert kind == NotificationType.RIDER_REMINDER
    assert payload["days"] == 3


def test_open_proposal_reminds_the_other_party(db, booking, artist, venue, notifier):
    ack = rider_workflow.share_rider(db, booking.id, artist.id, notifier)
    entry = rider_workflow.propose_modification(
        db, ack.id, venue.id, "pa_system_required", "true", "House PA", notifier
    )
    notifier.reset_mock()
    ops_scheduler.handle_rider_reminders(db, now=entry.proposed_at + timedelta(days=1, minutes=5), notifier=notifier)
    assert notifier.notify.call_args.args[0] == artist.id


def test_reminder_is_not_repeated_on_the_same_day(db, booking, artist, venue, notifier):
    ack = rider_workflow.share_rider(db, booking.id, artist.id, notifier)
    ack.created_at = datetime.utcnow() - timedelta(days=1, hours=2)
    db.commit()

    real = OutboxNotifier(db)
    assert ops_scheduler.handle_rider_reminders(db, now=datetime.utcnow(), notifier=real) == {"rider_reminders": 1}
    assert ops_scheduler.handle_rider_reminders(db, now=datetime.utcnow(), notifier=real) == {"rider_reminders": 0}
    reminders = (
        db.query(Notification)
        .filter(Notification.user_id == venue.id, Notification.type == NotificationType.RIDER_REMINDER)
        .all()
    )
    assert len(reminders) == 1


def test_resolved_riders_get_no_reminders(db, booking, artist, venue, notifier):
    ack = rider_workflow.share_rider(db, booking.id, artist.id, notifier)
    rider_workflow.acknowledge_rider(db, ack.id, venue.id, None, notifier)
    notifier.reset_mock()
    ops_scheduler.handle_rider_reminders(db, now=ack.created_at + timedelta(days=1, hours=1), notifier=notifier)
    notifier.notify.assert_not_called()

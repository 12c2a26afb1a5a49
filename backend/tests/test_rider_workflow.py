from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import text

from stagebook.crud import crud_rider
from stagebook.models import (
    BookingStatus,
    ModificationStatus,
    NotificationType,
    RiderAcknowledgment,
    RiderAcknowledgmentStatus as AckStatus,
    RiderTemplate,
)
from stagebook.schemas import ProposalResponse
from stagebook.services import booking_lifecycle, rider_workflow
from stagebook.utils.errors import Conflict, Forbidden, NotFound, ValidationError


@pytest.fixture
def ack(db, booking, artist, notifier):
    shared = rider_workflow.share_rider(db, booking.id, artist.id, notifier)
    notifier.reset_mock()
    return shared


def _propose(db, ack, user, notifier, field="paSystemRequired", value="true", reason="Venue has house PA"):
    return rider_workflow.propose_modification(db, ack.id, user.id, field, value, reason, notifier)


def test_share_creates_pending_acknowledgment_and_notifies_venue(db, booking, artist, venue, template, notifier):
    ack = rider_workflow.share_rider(db, booking.id, artist.id, notifier)
    assert ack.status == AckStatus.PENDING
    assert ack.rider_template_id == template.id
    assert (ack.artist_id, ack.venue_id) == (artist.id, venue.id)
    recipient, kind, payload = notifier.notify.call_args.args
    assert recipient == venue.id
    assert kind == NotificationType.RIDER_SHARED
    assert payload["link"].endswith(f"/bookings/{booking.id}/rider-acknowledgment")


def test_share_is_idempotent(db, booking, artist, notifier):
    first = rider_workflow.share_rider(db, booking.id, artist.id, notifier)
    second = rider_workflow.share_rider(db, booking.id, artist.id, notifier)
    assert first.id == second.id
    assert db.query(RiderAcknowledgment).filter_by(booking_id=booking.id).count() == 1
    assert notifier.notify.call_count == 2


def test_share_requires_artist_and_template(db, booking, venue, artist, notifier):
    with pytest.raises(Forbidden):
        rider_workflow.share_rider(db, booking.id, venue.id, notifier)

    booking.rider_template_id = None
    db.commit()
    with pytest.raises(ValidationError) as exc:
        rider_workflow.share_rider(db, booking.id, artist.id, notifier)
    assert exc.value.field_errors == {"rider_template_id": "required"}


def test_share_on_cancelled_booking_conflicts(db, booking, artist, notifier):
    booking_lifecycle.update_status(db, booking.id, artist.id, BookingStatus.CANCELLED, notifier)
    with pytest.raises(Conflict):
        rider_workflow.share_rider(db, booking.id, artist.id, notifier)


def test_share_with_new_template_updates_pending_acknowledgment(db, booking, artist, ack, notifier):
    other = RiderTemplate(artist_id=artist.id, template_name="Acoustic duo", number_of_performers=2)
    db.add(other)
    db.commit()
    shared = rider_workflow.share_rider(db, booking.id, artist.id, notifier, rider_template_id=other.id)
    assert shared.id == ack.id
    assert shared.rider_template_id == other.id
    db.refresh(booking)
    assert booking.rider_template_id == other.id


def test_propose_then_accept(db, ack, artist, venue, notifier):
    entry = _propose(db, ack, venue, notifier)
    assert entry.field_name == "pa_system_required"
    assert entry.original_value is False
    assert entry.proposed_by_party == "venue"
    assert entry.sequence == 1
    db.refresh(ack)
    assert ack.status == AckStatus.MODIFICATIONS_PROPOSED
    assert len(crud_rider.list_modifications(db, ack.id)) == 1
    recipient, kind, payload = notifier.notify.call_args.args
    assert recipient == artist.id
    assert kind == NotificationType.RIDER_MODIFICATIONS_PROPOSED
    assert payload["field_name"] == "pa_system_required"

    resolved = rider_workflow.respond_to_proposal(db, ack.id, artist.id, "accept", notifier)
    assert resolved.status == AckStatus.ACCEPTED
    assert resolved.resolved_at is not None
    [logged] = crud_rider.list_modifications(db, ack.id)
    assert logged.status == ModificationStatus.ACCEPTED
    assert logged.responded_at is not None
    assert rider_workflow.effective_rider(db, resolved)["pa_system_required"] is True


def test_same_party_cannot_propose_twice_in_a_row(db, ack, venue, notifier):
    _propose(db, ack, venue, notifier)
    with pytest.raises(Conflict):
        _propose(db, ack, venue, notifier, field="di_boxes_needed", value="4", reason="More inputs")
    assert crud_rider.count_modifications(db, ack.id) == 1


def test_proposer_cannot_answer_own_proposal(db, ack, venue, notifier):
    _propose(db, ack, venue, notifier)
    with pytest.raises(Conflict):
        rider_workflow.respond_to_proposal(db, ack.id, venue.id, "accept", notifier)
    with pytest.raises(Conflict):
        rider_workflow.finalize(db, ack.id, venue.id, "accepted", notifier)


def test_artist_cannot_open_negotiation_on_pending_rider(db, ack, artist, notifier):
    with pytest.raises(Forbidden):
        _propose(db, ack, artist, notifier)


def test_counter_proposals_alternate_and_log_is_ordered(db, ack, artist, venue, notifier):
    _propose(db, ack, venue, notifier)
    after_counter = rider_workflow.respond_to_proposal(
        db,
        ack.id,
        artist.id,
        "counter_propose",
        notifier,
        field_name="di_boxes_needed",
        proposed_value="3",
        reason="Need one more for keys",
    )
    assert after_counter.status == AckStatus.MODIFICATIONS_PROPOSED
    _propose(db, ack, venue, notifier, field="di_boxes_needed", value="2", reason="We only own two")

    timeline = rider_workflow.get_timeline(db, ack.id, artist.id)
    assert [e.sequence for e in timeline] == [1, 2, 3]
    assert [e.proposed_by_party for e in timeline] == ["venue", "artist", "venue"]
    assert [e.status for e in timeline] == [
        ModificationStatus.COUNTERED,
        ModificationStatus.COUNTERED,
        ModificationStatus.PENDING,
    ]
    stamps = [e.proposed_at for e in timeline]
    assert stamps == sorted(stamps)


def test_hyphenated_counter_propose_is_accepted(db, ack, artist, venue, notifier):
    _propose(db, ack, venue, notifier)
    after_counter = rider_workflow.respond_to_proposal(
        db,
        ack.id,
        artist.id,
        "Counter-Propose",
        notifier,
        field_name="di_boxes_needed",
        proposed_value="3",
        reason="Need one more for keys",
    )
    assert after_counter.status == AckStatus.MODIFICATIONS_PROPOSED
    assert [e.proposed_by_party for e in rider_workflow.get_timeline(db, ack.id, venue.id)] == ["venue", "artist"]
    assert ProposalResponse(decision="counter-propose").decision == "counter_propose"


def test_proposal_timestamps_never_go_backwards(db, ack, artist, venue, notifier):
    first = _propose(db, ack, venue, notifier)
    future = datetime.utcnow() + timedelta(hours=1)
    first.proposed_at = future
    db.commit()

    second = _propose(db, ack, artist, notifier, field="di_boxes_needed", value="3", reason="Keys")
    assert second.proposed_at >= future


def test_invalid_proposal_lists_every_missing_field(db, ack, venue, notifier):
    with pytest.raises(ValidationError) as exc:
        rider_workflow.propose_modification(db, ack.id, venue.id, " ", "", None, notifier)
    assert set(exc.value.field_errors) == {"field_name", "proposed_value", "reason"}

    with pytest.raises(ValidationError) as exc:
        _propose(db, ack, venue, notifier, field="helicopterPad")
    assert exc.value.field_errors == {"field_name": "unknown rider field"}

    with pytest.raises(ValidationError):
        _propose(db, ack, venue, notifier, field="di_boxes_needed", value="several")
    db.refresh(ack)
    assert ack.status == AckStatus.PENDING


def test_venue_acknowledges_pending_rider(db, ack, artist, venue, notifier):
    done = rider_workflow.acknowledge_rider(db, ack.id, venue.id, "All good", notifier)
    assert done.status == AckStatus.ACKNOWLEDGED
    assert done.acknowledged_at is not None
    assert done.notes == "All good"
    notifier.notify.assert_called_once()
    assert notifier.notify.call_args.args[:2] == (artist.id, NotificationType.RIDER_ACKNOWLEDGED)

    notifier.reset_mock()
    again = rider_workflow.acknowledge_rider(db, ack.id, venue.id, None, notifier)
    assert again.acknowledged_at == done.acknowledged_at
    notifier.notify.assert_not_called()

    with pytest.raises(Conflict):
        _propose(db, ack, venue, notifier)


def test_artist_cannot_acknowledge(db, ack, artist, notifier):
    with pytest.raises(Forbidden):
        rider_workflow.acknowledge_rider(db, ack.id, artist.id, None, notifier)


def test_finalize_rejects_and_blocks_further_changes(db, ack, artist, venue, notifier):
    _propose(db, ack, venue, notifier)
    rejected = rider_workflow.finalize(db, ack.id, artist.id, "rejected", notifier, notes="Cannot do without PA")
    assert rejected.status == AckStatus.REJECTED
    assert rejected.notes == "Cannot do without PA"
    [entry] = crud_rider.list_modifications(db, ack.id)
    assert entry.status == ModificationStatus.REJECTED
    recipients = {call.args[0] for call in notifier.notify.call_args_list if call.args[1] == NotificationType.RIDER_RESOLVED}
    assert recipients == {artist.id, venue.id}

    with pytest.raises(Conflict):
        rider_workflow.finalize(db, ack.id, venue.id, "accepted", notifier)
    with pytest.raises(Conflict):
        rider_workflow.respond_to_proposal(db, ack.id, venue.id, "accept", notifier)


def test_venue_can_reject_pending_rider(db, ack, venue, notifier):
    rejected = rider_workflow.finalize(db, ack.id, venue.id, "rejected", notifier)
    assert rejected.status == AckStatus.REJECTED


def test_unknown_decision_and_outcome(db, ack, venue, notifier):
    with pytest.raises(ValidationError):
        rider_workflow.respond_to_proposal(db, ack.id, venue.id, "maybe", notifier)
    with pytest.raises(ValidationError):
        rider_workflow.finalize(db, ack.id, venue.id, "pending", notifier)


def test_outsider_and_missing_acknowledgment(db, ack, outsider, booking, venue, notifier):
    with pytest.raises(Forbidden):
        rider_workflow.get_acknowledgment(db, ack.id, outsider.id)
    with pytest.raises(Forbidden):
        _propose(db, ack, outsider, notifier)
    with pytest.raises(NotFound):
        rider_workflow.get_acknowledgment(db, ack.id + 1, venue.id)
    assert rider_workflow.get_acknowledgment_for_booking(db, booking.id, venue.id).id == ack.id


def test_round_limit(db, ack, artist, venue, notifier, monkeypatch):
    monkeypatch.setattr(rider_workflow.settings, "RIDER_MAX_PROPOSAL_ROUNDS", 2)
    _propose(db, ack, venue, notifier)
    _propose(db, ack, artist, notifier, field="di_boxes_needed", value="3", reason="Keys")
    with pytest.raises(Conflict):
        _propose(db, ack, venue, notifier, field="di_boxes_needed", value="2", reason="Two only")
    # The open proposal can still be answered
    assert rider_workflow.respond_to_proposal(db, ack.id, venue.id, "accept", notifier).status == AckStatus.ACCEPTED


def test_stale_acknowledgment_write_conflicts(db, ack, venue, notifier):
    db.execute(
        text("UPDATE rider_acknowledgments SET version = version + 1 WHERE id = :id"),
        {"id": ack.id},
    )
    with pytest.raises(Conflict):
        crud_rider.update_acknowledgment(db, ack, notes="late write")


def test_coerce_and_normalize_helpers():
    assert rider_workflow.normalize_field_name("paSystemRequired") == "pa_system_required"
    assert rider_workflow.normalize_field_name("di_boxes_needed") == "di_boxes_needed"
    assert rider_workflow.coerce_rider_value("pa_system_required", "Yes") is True
    assert rider_workflow.coerce_rider_value("number_of_rooms", " 2 ") == 2
    assert rider_workflow.coerce_rider_value("deposit_percentage", "50") == Decimal("50")
    assert rider_workflow.coerce_rider_value("beverages", "water, coffee") == ["water", "coffee"]
    with pytest.raises(ValueError):
        rider_workflow.coerce_rider_value("lighting_required", "sometimes")

import pytest

from stagebook.models import BookingStatus, ContractStatus, RiderAcknowledgmentStatus as AckStatus
from stagebook.services.booking_lifecycle import BOOKING_MACHINE
from stagebook.services.contract_workflow import CONTRACT_MACHINE
from stagebook.services.parties import Party, party_of, require_party, user_id_for
from stagebook.services.rider_workflow import RIDER_MACHINE
from stagebook.utils.errors import Conflict, Forbidden


class _Record:
    artist_id = 1
    venue_id = 2


def test_booking_edges_per_party():
    assert Party.ARTIST.can_transition(BOOKING_MACHINE, BookingStatus.PENDING, BookingStatus.CONFIRMED)
    assert not Party.VENUE.can_transition(BOOKING_MACHINE, BookingStatus.PENDING, BookingStatus.CONFIRMED)
    assert Party.VENUE.can_transition(BOOKING_MACHINE, BookingStatus.CONFIRMED, BookingStatus.CANCELLED)
    assert Party.SYSTEM.can_transition(BOOKING_MACHINE, BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
    assert not Party.VENUE.can_transition(BOOKING_MACHINE, BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
    # Terminal states have no way out
    assert BOOKING_MACHINE.targets(BookingStatus.CANCELLED) == []
    assert BOOKING_MACHINE.targets(BookingStatus.COMPLETED) == []


def test_check_missing_edge_uses_requested_error():
    with pytest.raises(Conflict) as exc:
        CONTRACT_MACHINE.check(Party.ARTIST, ContractStatus.SIGNED, ContractStatus.REJECTED)
    assert exc.value.field_errors == {"status": "invalid transition signed -> rejected"}

    with pytest.raises(Forbidden):
        BOOKING_MACHINE.check(
            Party.ARTIST,
            BookingStatus.CANCELLED,
            BookingStatus.CONFIRMED,
            missing_edge=Forbidden,
        )


def test_check_wrong_party_is_forbidden():
    with pytest.raises(Forbidden):
        RIDER_MACHINE.check(Party.ARTIST, AckStatus.PENDING, AckStatus.ACKNOWLEDGED)
    edge = RIDER_MACHINE.check(Party.VENUE, AckStatus.PENDING, AckStatus.ACKNOWLEDGED)
    assert edge.target == AckStatus.ACKNOWLEDGED


def test_terminal_states():
    for state in (AckStatus.ACKNOWLEDGED, AckStatus.ACCEPTED, AckStatus.REJECTED):
        assert RIDER_MACHINE.is_terminal(state)
    assert not RIDER_MACHINE.is_terminal(AckStatus.MODIFICATIONS_PROPOSED)
    assert set(CONTRACT_MACHINE.targets(ContractStatus.PENDING_SIGNATURES)) == {
        ContractStatus.SIGNED,
        ContractStatus.REJECTED,
        ContractStatus.CANCELLED,
    }


def test_party_helpers():
    record = _Record()
    assert party_of(record, 1) is Party.ARTIST
    assert party_of(record, 2) is Party.VENUE
    assert party_of(record, 3) is None
    assert Party.ARTIST.counterpart is Party.VENUE
    assert Party.SYSTEM.counterpart is None
    assert user_id_for(record, Party.VENUE) == 2
    with pytest.raises(Forbidden):
        require_party(record, 3, "booking")

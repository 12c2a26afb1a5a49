"""Contract sign-off: draft -> pending_signatures -> signed, with reject/cancel exits.

Every generation inserts a new version row; content is never edited in place.
"""

from __future__ import annotations

import difflib
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..crud import crud_booking, crud_contract, crud_rider
from ..models import BookingStatus, ContractStatus, NotificationType
from ..utils.errors import Conflict, Forbidden, NotFound, ValidationError
from ..utils.notifications import Notifier, notify_parties
from . import rider_workflow
from .contract_document import ContractData, Renderer
from .parties import Party, party_of, require_party, user_id_for
from .state_machine import StateMachine

logger = logging.getLogger(__name__)

_PARTIES = {Party.ARTIST, Party.VENUE}

CONTRACT_MACHINE = StateMachine.build(
    "contract",
    [
        (ContractStatus.DRAFT, ContractStatus.PENDING_SIGNATURES, _PARTIES),
        (ContractStatus.PENDING_SIGNATURES, ContractStatus.SIGNED, _PARTIES),
        (ContractStatus.DRAFT, ContractStatus.REJECTED, _PARTIES),
        (ContractStatus.PENDING_SIGNATURES, ContractStatus.REJECTED, _PARTIES),
        (ContractStatus.DRAFT, ContractStatus.CANCELLED, _PARTIES),
        (ContractStatus.PENDING_SIGNATURES, ContractStatus.CANCELLED, _PARTIES),
    ],
    terminal=(ContractStatus.SIGNED, ContractStatus.REJECTED, ContractStatus.CANCELLED),
)

_SIGNED_AT = {Party.ARTIST: "artist_signed_at", Party.VENUE: "venue_signed_at"}
_SIGNATURE = {Party.ARTIST: "artist_signature", Party.VENUE: "venue_signature"}


def _get_contract(db: Session, contract_id: int) -> models.Contract:
    contract = crud_contract.get_contract_by_id(db, contract_id)
    if contract is None:
        raise NotFound("Contract not found", {"contract_id": "not found"})
    return contract


def _get_booking_for_party(db: Session, booking_id: int, caller_id: int) -> tuple[models.Booking, Party]:
    booking = crud_booking.get_booking_by_id(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", {"booking_id": "not found"})
    return booking, require_party(booking, caller_id, "booking")


def _payload(contract: models.Contract, **extra) -> dict:
    return {
        "booking_id": contract.booking_id,
        "contract_id": contract.id,
        "version": contract.version,
        **extra,
    }


def _notify_counterparty(
    notifier: Notifier,
    contract: models.Contract,
    actor: Party,
    kind: NotificationType,
    **extra,
) -> None:
    notifier.notify(user_id_for(contract, actor.counterpart), kind, _payload(contract, **extra))


def build_contract_data(
    db: Session,
    booking: models.Booking,
    version: int,
    contract_in: schemas.ContractCreate,
) -> ContractData:
    """Snapshot the booking and its rider (with agreed changes) for rendering."""
    ack = crud_rider.get_acknowledgment_by_booking(db, booking.id)
    template = booking.rider_template
    if ack is not None and ack.rider_template_id == booking.rider_template_id:
        rider = rider_workflow.effective_rider(db, ack)
    elif template is not None:
        rider = template.requirements()
    else:
        rider = {}
    artist = booking.artist
    venue = booking.venue
    return ContractData(
        booking_id=booking.id,
        version=version,
        title=contract_in.title or f"Performance Agreement: {booking.venue_name}, {booking.event_date.isoformat()}",
        contract_type=contract_in.contract_type,
        artist_name=artist.display_name if artist else f"Artist #{booking.artist_id}",
        venue_name=booking.venue_name or (venue.display_name if venue else f"Venue #{booking.venue_id}"),
        event_date=booking.event_date,
        event_time=booking.event_time,
        venue_address=booking.venue_address,
        total_fee=booking.total_fee,
        deposit_amount=booking.deposit_amount,
        event_details=booking.event_details,
        rider=rider,
        rider_extras=template.extras if template is not None else None,
        terms=contract_in.terms,
    )


def generate(
    db: Session,
    booking_id: int,
    caller_id: int,
    contract_in: schemas.ContractCreate,
    renderer: Renderer,
    notifier: Notifier,
) -> models.Contract:
    booking, party = _get_booking_for_party(db, booking_id, caller_id)
    if booking.status == BookingStatus.CANCELLED:
        raise Conflict("Cannot generate a contract for a cancelled booking", {"status": "cancelled"})
    version = crud_contract.next_version(db, booking.id)
    data = build_contract_data(db, booking, version, contract_in)
    rendered = renderer(data)
    contract = crud_contract.create_contract(
        db,
        booking=booking,
        version=version,
        contract_type=contract_in.contract_type,
        title=data.title,
        content=rendered.text_snapshot,
        pdf_data=rendered.pdf_bytes,
        actor_id=caller_id,
        party=party.value,
    )
    logger.info("Contract %s v%s generated for booking %s by %s", contract.id, version, booking.id, party.value)
    _notify_counterparty(notifier, contract, party, NotificationType.CONTRACT_GENERATED)
    return contract


def send_for_signatures(
    db: Session, contract_id: int, caller_id: int, notifier: Notifier
) -> models.Contract:
    contract = _get_contract(db, contract_id)
    party = require_party(contract, caller_id, "contract")
    CONTRACT_MACHINE.check(party, contract.status, ContractStatus.PENDING_SIGNATURES)
    crud_contract.add_event(db, contract, "sent", caller_id, party.value)
    contract = crud_contract.update_contract_status(db, contract, ContractStatus.PENDING_SIGNATURES)
    _notify_counterparty(notifier, contract, party, NotificationType.CONTRACT_SENT)
    return contract


def sign(
    db: Session,
    contract_id: int,
    caller_id: int,
    notifier: Notifier,
    party: Optional[str] = None,
    signature: Optional[str] = None,
) -> models.Contract:
    """Record the caller's signature.

    The first signature on a draft sends it for signatures; the second one
    completes the contract. A party can sign only once.
    """
    contract = _get_contract(db, contract_id)
    caller_party = require_party(contract, caller_id, "contract")
    if party is not None and Party(party) is not caller_party:
        raise Forbidden(f"You cannot sign as the {party}", {"party": "does not match caller"})
    if CONTRACT_MACHINE.is_terminal(contract.status):
        raise Conflict(f"Contract is already {contract.status.value}", {"status": contract.status.value})
    if getattr(contract, _SIGNED_AT[caller_party]) is not None:
        raise Conflict(f"The {caller_party.value} has already signed this contract", {"party": "already signed"})

    other_signed = getattr(contract, _SIGNED_AT[caller_party.counterpart]) is not None
    if other_signed:
        new_status = ContractStatus.SIGNED
    else:
        new_status = ContractStatus.PENDING_SIGNATURES
    if new_status != contract.status:
        CONTRACT_MACHINE.check(caller_party, contract.status, new_status)

    crud_contract.add_event(
        db,
        contract,
        "signed",
        caller_id,
        caller_party.value,
        {"fully_signed": new_status == ContractStatus.SIGNED},
    )
    contract = crud_contract.update_contract_status(
        db,
        contract,
        new_status,
        **{
            _SIGNED_AT[caller_party]: datetime.utcnow(),
            _SIGNATURE[caller_party]: signature,
        },
    )
    fully_signed = contract.status == ContractStatus.SIGNED
    logger.info("Contract %s signed by %s (fully signed: %s)", contract.id, caller_party.value, fully_signed)
    if fully_signed:
        notify_parties(
            notifier,
            [contract.artist_id, contract.venue_id],
            NotificationType.CONTRACT_SIGNED,
            _payload(contract, signed_by=caller_party.value, fully_signed=True),
        )
    else:
        _notify_counterparty(
            notifier, contract, caller_party, NotificationType.CONTRACT_SIGNED,
            signed_by=caller_party.value, fully_signed=False,
        )
    return contract


def reject(
    db: Session,
    contract_id: int,
    caller_id: int,
    reason: Optional[str],
    notifier: Notifier,
) -> models.Contract:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required to reject a contract", {"reason": "required"})
    contract = _get_contract(db, contract_id)
    party = require_party(contract, caller_id, "contract")
    CONTRACT_MACHINE.check(party, contract.status, ContractStatus.REJECTED)
    crud_contract.add_event(db, contract, "rejected", caller_id, party.value, {"reason": reason})
    contract = crud_contract.update_contract_status(
        db,
        contract,
        ContractStatus.REJECTED,
        rejected_by=caller_id,
        rejection_reason=reason,
    )
    _notify_counterparty(notifier, contract, party, NotificationType.CONTRACT_REJECTED, reason=reason)
    return contract


def cancel(db: Session, contract_id: int, caller_id: int, notifier: Notifier) -> models.Contract:
    contract = _get_contract(db, contract_id)
    party = require_party(contract, caller_id, "contract")
    CONTRACT_MACHINE.check(party, contract.status, ContractStatus.CANCELLED)
    crud_contract.add_event(db, contract, "cancelled", caller_id, party.value)
    contract = crud_contract.update_contract_status(
        db, contract, ContractStatus.CANCELLED, cancelled_by=caller_id
    )
    _notify_counterparty(notifier, contract, party, NotificationType.CONTRACT_CANCELLED)
    return contract


def available_actions(contract: models.Contract, party: Optional[Party]) -> dict:
    """Actions the party can take on the contract right now."""
    actions: List[str] = []
    if party in _PARTIES and not CONTRACT_MACHINE.is_terminal(contract.status):
        if getattr(contract, _SIGNED_AT[party]) is None:
            actions.append("sign")
        if contract.status == ContractStatus.DRAFT:
            actions.append("send")
        actions.append("reject")
        actions.append("cancel")
    return {
        "can_sign": "sign" in actions,
        "can_reject": "reject" in actions,
        "can_cancel": "cancel" in actions,
        "can_send": "send" in actions,
        "actions": actions,
    }


def get_contract(db: Session, contract_id: int, caller_id: int) -> models.Contract:
    contract = _get_contract(db, contract_id)
    require_party(contract, caller_id, "contract")
    return contract


def get_actions(db: Session, contract_id: int, caller_id: int) -> dict:
    contract = get_contract(db, contract_id, caller_id)
    return available_actions(contract, party_of(contract, caller_id))


def get_audit_trail(db: Session, contract_id: int, caller_id: int) -> List[models.ContractEvent]:
    contract = get_contract(db, contract_id, caller_id)
    return crud_contract.list_events(db, contract.id)


def get_contract_pdf(db: Session, contract_id: int, caller_id: int) -> bytes:
    contract = get_contract(db, contract_id, caller_id)
    if not contract.pdf_data:
        raise NotFound("No PDF stored for this contract")
    return contract.pdf_data


def list_contracts(db: Session, booking_id: int, caller_id: int) -> List[models.Contract]:
    booking, _ = _get_booking_for_party(db, booking_id, caller_id)
    return crud_contract.list_contracts_for_booking(db, booking.id)


def compare_versions(
    db: Session,
    booking_id: int,
    caller_id: int,
    from_version: int,
    to_version: int,
) -> str:
    """Unified diff between two versions' text snapshots."""
    booking, _ = _get_booking_for_party(db, booking_id, caller_id)
    old = crud_contract.get_contract_by_version(db, booking.id, from_version)
    new = crud_contract.get_contract_by_version(db, booking.id, to_version)
    missing = {}
    if old is None:
        missing["from_version"] = "not found"
    if new is None:
        missing["to_version"] = "not found"
    if missing:
        raise NotFound("Contract version not found", missing)
    return "".join(
        difflib.unified_diff(
            old.content.splitlines(keepends=True),
            new.content.splitlines(keepends=True),
            fromfile=f"v{old.version}",
            tofile=f"v{new.version}",
        )
    )

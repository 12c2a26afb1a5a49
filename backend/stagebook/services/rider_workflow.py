"""Rider acknowledgment negotiation between a booking's venue and artist.

pending -> acknowledged | modifications_proposed | rejected
modifications_proposed -> modifications_proposed (counter) | accepted | rejected

Proposals are kept as an append-only log on the acknowledgment. Only the
party that did not author the latest entry may answer it.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from sqlalchemy import Boolean, Integer, JSON, Numeric
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..crud import crud_booking, crud_rider
from ..models import (
    BookingStatus,
    ModificationStatus,
    NotificationType,
    RIDER_FIELDS,
    RiderAcknowledgmentStatus as AckStatus,
)
from ..utils.errors import Conflict, Forbidden, NotFound, ValidationError
from ..utils.notifications import Notifier, notify_parties
from .parties import Party, require_party, user_id_for
from .state_machine import StateMachine

logger = logging.getLogger(__name__)

RIDER_MACHINE = StateMachine.build(
    "rider acknowledgment",
    [
        (AckStatus.PENDING, AckStatus.ACKNOWLEDGED, {Party.VENUE}),
        (AckStatus.PENDING, AckStatus.MODIFICATIONS_PROPOSED, {Party.VENUE}),
        (AckStatus.PENDING, AckStatus.REJECTED, {Party.VENUE}),
        (AckStatus.MODIFICATIONS_PROPOSED, AckStatus.MODIFICATIONS_PROPOSED, {Party.ARTIST, Party.VENUE}),
        (AckStatus.MODIFICATIONS_PROPOSED, AckStatus.ACCEPTED, {Party.ARTIST, Party.VENUE}),
        (AckStatus.MODIFICATIONS_PROPOSED, AckStatus.REJECTED, {Party.ARTIST, Party.VENUE}),
    ],
    terminal=(AckStatus.ACKNOWLEDGED, AckStatus.ACCEPTED, AckStatus.REJECTED),
)

DECISIONS = ("accept", "counter_propose", "reject")
OUTCOMES = (AckStatus.ACCEPTED.value, AckStatus.REJECTED.value)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def rider_link(booking_id: int) -> str:
    return f"{settings.FRONTEND_URL}/bookings/{booking_id}/rider-acknowledgment"


def normalize_decision(decision: str) -> str:
    """``Counter-Propose`` and ``counter_propose`` name the same decision."""
    return (decision or "").strip().lower().replace("-", "_").replace(" ", "_")


def normalize_field_name(name: str) -> str:
    """``paSystemRequired`` -> ``pa_system_required``."""
    name = name.strip()
    if "_" in name:
        return name.lower()
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _json_safe(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def coerce_rider_value(field_name: str, raw: str) -> Any:
    """Convert a proposed string value to the column's Python type.

    Raises ``ValueError`` when the string cannot represent that type.
    """
    column_type = models.RiderTemplate.__table__.c[field_name].type
    text = raw.strip()
    if isinstance(column_type, Boolean):
        lowered = text.lower()
        if lowered in ("true", "yes", "1", "y", "on"):
            return True
        if lowered in ("false", "no", "0", "n", "off"):
            return False
        raise ValueError(f"{field_name} expects yes/no")
    if isinstance(column_type, Integer):
        return int(text)
    if isinstance(column_type, Numeric):
        try:
            return Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"{field_name} expects a number") from exc
    if isinstance(column_type, JSON):
        return [item.strip() for item in text.split(",") if item.strip()]
    return text


# ─── Loading helpers ─────────────────────────────────────────────────────────


def _get_ack(db: Session, ack_id: int) -> models.RiderAcknowledgment:
    ack = crud_rider.get_acknowledgment(db, ack_id)
    if ack is None:
        raise NotFound("Rider acknowledgment not found", {"acknowledgment_id": "not found"})
    return ack


def get_acknowledgment(db: Session, ack_id: int, caller_id: int) -> models.RiderAcknowledgment:
    ack = _get_ack(db, ack_id)
    require_party(ack, caller_id, "rider acknowledgment")
    return ack


def get_acknowledgment_for_booking(
    db: Session, booking_id: int, caller_id: int
) -> models.RiderAcknowledgment:
    booking = crud_booking.get_booking_by_id(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", {"booking_id": "not found"})
    require_party(booking, caller_id, "booking")
    ack = crud_rider.get_acknowledgment_by_booking(db, booking_id)
    if ack is None:
        raise NotFound("Rider has not been shared for this booking")
    return ack


# ─── Operations ──────────────────────────────────────────────────────────────


def share_rider(
    db: Session,
    booking_id: int,
    caller_id: int,
    notifier: Notifier,
    rider_template_id: Optional[int] = None,
) -> models.RiderAcknowledgment:
    """Create the booking's acknowledgment on first share and return it on later ones.

    The venue is notified on every call so the artist can re-send the link.
    """
    booking = crud_booking.get_booking_by_id(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", {"booking_id": "not found"})
    party = require_party(booking, caller_id, "booking")
    if party is not Party.ARTIST:
        raise Forbidden("Only the booking's artist can share the rider")
    if booking.status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
        raise Conflict(f"Cannot share a rider on a {booking.status.value} booking")

    if rider_template_id is not None and rider_template_id != booking.rider_template_id:
        template = crud_rider.get_template(db, rider_template_id)
        if template is None or template.artist_id != booking.artist_id:
            raise ValidationError(
                "Rider template does not belong to this artist",
                {"rider_template_id": "invalid"},
            )
        booking = crud_booking.attach_rider_template(db, booking, rider_template_id)
    if booking.rider_template_id is None:
        raise ValidationError(
            "Attach a rider template to the booking before sharing",
            {"rider_template_id": "required"},
        )

    ack = crud_rider.get_acknowledgment_by_booking(db, booking.id)
    if ack is None:
        try:
            ack = crud_rider.create_acknowledgment(db, booking)
            logger.info("Rider acknowledgment %s created for booking %s", ack.id, booking.id)
        except IntegrityError:
            ack = crud_rider.get_acknowledgment_by_booking(db, booking.id)
            if ack is None:
                raise Conflict("Rider acknowledgment could not be created")
    elif ack.status == AckStatus.PENDING and ack.rider_template_id != booking.rider_template_id:
        ack = crud_rider.update_acknowledgment(db, ack, rider_template_id=booking.rider_template_id)

    notifier.notify(
        booking.venue_id,
        NotificationType.RIDER_SHARED,
        {
            "booking_id": booking.id,
            "acknowledgment_id": ack.id,
            "link": rider_link(booking.id),
            "actor_name": booking.artist.display_name if booking.artist else None,
        },
    )
    return ack


def acknowledge_rider(
    db: Session,
    ack_id: int,
    caller_id: int,
    notes: Optional[str],
    notifier: Notifier,
) -> models.RiderAcknowledgment:
    ack = _get_ack(db, ack_id)
    party = require_party(ack, caller_id, "rider acknowledgment")
    if party is Party.VENUE and ack.status == AckStatus.ACKNOWLEDGED:
        return ack
    RIDER_MACHINE.check(party, ack.status, AckStatus.ACKNOWLEDGED)
    now = datetime.utcnow()
    fields: dict[str, Any] = {
        "status": AckStatus.ACKNOWLEDGED,
        "acknowledged_at": now,
        "resolved_at": now,
    }
    if notes:
        fields["notes"] = notes
    ack = crud_rider.update_acknowledgment(db, ack, **fields)
    notifier.notify(
        ack.artist_id,
        NotificationType.RIDER_ACKNOWLEDGED,
        {"booking_id": ack.booking_id, "acknowledgment_id": ack.id},
    )
    return ack


def _validate_proposal(
    field_name: Optional[str], proposed_value: Optional[str], reason: Optional[str]
) -> tuple[str, str, str]:
    errors: dict[str, str] = {}
    field_name = (field_name or "").strip()
    proposed_value = (proposed_value or "").strip()
    reason = (reason or "").strip()
    if not field_name:
        errors["field_name"] = "required"
    if not proposed_value:
        errors["proposed_value"] = "required"
    if not reason:
        errors["reason"] = "required"
    if errors:
        raise ValidationError("Proposal is missing required fields", errors)
    normalized = normalize_field_name(field_name)
    if normalized not in RIDER_FIELDS:
        raise ValidationError(
            f"Unknown rider field {field_name}", {"field_name": "unknown rider field"}
        )
    try:
        coerce_rider_value(normalized, proposed_value)
    except ValueError as exc:
        raise ValidationError(str(exc), {"proposed_value": "invalid"}) from exc
    return normalized, proposed_value, reason


def propose_modification(
    db: Session,
    ack_id: int,
    caller_id: int,
    field_name: Optional[str],
    proposed_value: Optional[str],
    reason: Optional[str],
    notifier: Notifier,
) -> models.RiderModification:
    """Append a proposal (or counter-proposal) to the log."""
    ack = _get_ack(db, ack_id)
    party = require_party(ack, caller_id, "rider acknowledgment")
    field_name, proposed_value, reason = _validate_proposal(field_name, proposed_value, reason)

    RIDER_MACHINE.check(party, ack.status, AckStatus.MODIFICATIONS_PROPOSED)
    last = crud_rider.get_last_modification(db, ack.id)
    if last is not None and ack.status == AckStatus.MODIFICATIONS_PROPOSED:
        if last.proposed_by_party == party.value:
            raise Conflict(
                "Wait for the other party to respond to your last proposal",
                {"proposed_by": "awaiting response"},
            )
    limit = settings.RIDER_MAX_PROPOSAL_ROUNDS
    if limit and crud_rider.count_modifications(db, ack.id) >= limit:
        raise Conflict(
            f"The negotiation reached the limit of {limit} proposals; accept or reject it",
        )

    now = datetime.utcnow()
    # Keep the log non-decreasing even if the clock steps backwards
    if last is not None and last.proposed_at and last.proposed_at > now:
        now = last.proposed_at
    original_value = _json_safe(effective_rider(db, ack).get(field_name))
    entry = crud_rider.add_modification(
        db,
        ack,
        field_name=field_name,
        original_value=original_value,
        proposed_value=proposed_value,
        reason=reason,
        proposed_by=caller_id,
        proposed_by_party=party.value,
        proposed_at=now,
        new_status=AckStatus.MODIFICATIONS_PROPOSED,
    )
    logger.info(
        "Rider acknowledgment %s: %s proposed %s=%r (entry %s)",
        ack.id,
        party.value,
        field_name,
        proposed_value,
        entry.sequence,
    )
    notifier.notify(
        user_id_for(ack, party.counterpart),
        NotificationType.RIDER_MODIFICATIONS_PROPOSED,
        {
            "booking_id": ack.booking_id,
            "acknowledgment_id": ack.id,
            "field_name": field_name,
            "proposed_value": proposed_value,
        },
    )
    return entry


def _require_turn(db: Session, ack: models.RiderAcknowledgment, party: Party) -> models.RiderModification:
    if ack.status != AckStatus.MODIFICATIONS_PROPOSED:
        raise Conflict(
            f"No open proposal to respond to (status is {ack.status.value})",
            {"status": ack.status.value},
        )
    last = crud_rider.get_last_modification(db, ack.id)
    if last is None:
        raise Conflict("No open proposal to respond to")
    if last.proposed_by_party == party.value:
        raise Conflict(
            "You cannot respond to your own proposal",
            {"proposed_by": "awaiting response"},
        )
    return last


def _resolve(
    db: Session,
    ack: models.RiderAcknowledgment,
    party: Party,
    outcome: AckStatus,
    notifier: Notifier,
    notes: Optional[str] = None,
) -> models.RiderAcknowledgment:
    RIDER_MACHINE.check(party, ack.status, outcome)
    entry_status = (
        ModificationStatus.ACCEPTED if outcome == AckStatus.ACCEPTED else ModificationStatus.REJECTED
    )
    ack = crud_rider.resolve_acknowledgment(
        db,
        ack,
        status=outcome,
        resolved_at=datetime.utcnow(),
        last_entry_status=entry_status,
        notes=notes,
    )
    logger.info("Rider acknowledgment %s %s by %s", ack.id, outcome.value, party.value)
    notify_parties(
        notifier,
        [ack.artist_id, ack.venue_id],
        NotificationType.RIDER_RESOLVED,
        {
            "booking_id": ack.booking_id,
            "acknowledgment_id": ack.id,
            "outcome": outcome.value,
        },
    )
    return ack


def respond_to_proposal(
    db: Session,
    ack_id: int,
    caller_id: int,
    decision: str,
    notifier: Notifier,
    field_name: Optional[str] = None,
    proposed_value: Optional[str] = None,
    reason: Optional[str] = None,
) -> models.RiderAcknowledgment:
    decision = normalize_decision(decision)
    if decision not in DECISIONS:
        raise ValidationError(
            f"Unknown decision {decision}", {"decision": f"one of {', '.join(DECISIONS)}"}
        )
    ack = _get_ack(db, ack_id)
    party = require_party(ack, caller_id, "rider acknowledgment")
    _require_turn(db, ack, party)
    if decision == "counter_propose":
        propose_modification(
            db, ack.id, caller_id, field_name, proposed_value, reason, notifier
        )
        db.refresh(ack)
        return ack
    outcome = AckStatus.ACCEPTED if decision == "accept" else AckStatus.REJECTED
    return _resolve(db, ack, party, outcome, notifier)


def finalize(
    db: Session,
    ack_id: int,
    caller_id: int,
    outcome: str,
    notifier: Notifier,
    notes: Optional[str] = None,
) -> models.RiderAcknowledgment:
    """Close the negotiation.

    ``accepted`` needs an open proposal answered by the non-proposer;
    ``rejected`` is open to the venue on a pending rider and to either party
    during negotiation.
    """
    if outcome not in OUTCOMES:
        raise ValidationError(
            f"Unknown outcome {outcome}", {"outcome": f"one of {', '.join(OUTCOMES)}"}
        )
    ack = _get_ack(db, ack_id)
    party = require_party(ack, caller_id, "rider acknowledgment")
    target = AckStatus(outcome)
    if RIDER_MACHINE.is_terminal(ack.status):
        raise Conflict(
            f"Rider acknowledgment is already {ack.status.value}",
            {"status": ack.status.value},
        )
    if target == AckStatus.ACCEPTED:
        _require_turn(db, ack, party)
    return _resolve(db, ack, party, target, notifier, notes=notes)


def get_timeline(db: Session, ack_id: int, caller_id: int) -> List[models.RiderModification]:
    """Log entries in (proposed_at, sequence) order."""
    ack = _get_ack(db, ack_id)
    require_party(ack, caller_id, "rider acknowledgment")
    return crud_rider.list_modifications(db, ack.id)


def effective_rider(db: Session, ack: models.RiderAcknowledgment) -> dict[str, Any]:
    """Template requirements with accepted modifications applied in log order."""
    template = ack.rider_template
    values: dict[str, Any] = template.requirements() if template is not None else {
        name: None for name in RIDER_FIELDS
    }
    for entry in crud_rider.list_modifications(db, ack.id):
        if entry.status != ModificationStatus.ACCEPTED:
            continue
        try:
            values[entry.field_name] = coerce_rider_value(entry.field_name, entry.proposed_value)
        except (ValueError, KeyError):
            values[entry.field_name] = entry.proposed_value
    return values

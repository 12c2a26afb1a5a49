"""Booking lifecycle: pending -> confirmed | cancelled, confirmed -> cancelled | completed."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..crud import crud_booking, crud_rider
from ..models import BookingStatus, NotificationType, UserRole
from ..utils.errors import Conflict, Forbidden, NotFound, ValidationError
from ..utils.notifications import Notifier, notify_parties
from .parties import Party, require_party, user_id_for
from .state_machine import StateMachine

logger = logging.getLogger(__name__)

BOOKING_MACHINE = StateMachine.build(
    "booking",
    [
        (BookingStatus.PENDING, BookingStatus.CONFIRMED, {Party.ARTIST}),
        (BookingStatus.PENDING, BookingStatus.CANCELLED, {Party.ARTIST}),
        (BookingStatus.CONFIRMED, BookingStatus.CANCELLED, {Party.ARTIST, Party.VENUE}),
        (BookingStatus.CONFIRMED, BookingStatus.COMPLETED, {Party.ARTIST, Party.SYSTEM}),
    ],
    terminal=(BookingStatus.CANCELLED, BookingStatus.COMPLETED),
)


def create_booking(
    db: Session,
    venue_user: models.User,
    booking_in: schemas.BookingCreate,
    notifier: Notifier,
) -> models.Booking:
    if venue_user.role != UserRole.VENUE:
        raise Forbidden("Only venues can create bookings")
    artist = db.query(models.User).filter(models.User.id == booking_in.artist_id).first()
    if artist is None or artist.role != UserRole.ARTIST:
        raise NotFound("Artist not found", {"artist_id": "not found"})
    if booking_in.rider_template_id is not None:
        template = crud_rider.get_template(db, booking_in.rider_template_id)
        if template is None or template.artist_id != artist.id:
            raise ValidationError(
                "Rider template does not belong to this artist",
                {"rider_template_id": "invalid"},
            )
    booking = crud_booking.create_booking(db, booking_in, venue_id=venue_user.id)
    logger.info("Booking %s created by venue %s for artist %s", booking.id, venue_user.id, artist.id)
    notifier.notify(
        artist.id,
        NotificationType.BOOKING_CREATED,
        {"booking_id": booking.id, "actor_name": venue_user.display_name},
    )
    return booking


def get_booking(db: Session, booking_id: int, caller_id: int) -> models.Booking:
    booking = crud_booking.get_booking_by_id(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", {"booking_id": "not found"})
    require_party(booking, caller_id, "booking")
    return booking


def list_bookings_for_user(
    db: Session, user: models.User, status: Optional[BookingStatus] = None
) -> List[models.Booking]:
    return crud_booking.list_bookings_for_user(db, user.id, status=status)


def update_status(
    db: Session,
    booking_id: int,
    caller_id: int,
    new_status: BookingStatus,
    notifier: Notifier,
) -> models.Booking:
    """Move a booking along one edge on behalf of one of its parties.

    Re-requesting the current status returns the booking unchanged.
    """
    booking = crud_booking.get_booking_by_id(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", {"booking_id": "not found"})
    party = require_party(booking, caller_id, "booking")
    return transition(db, booking, party, BookingStatus(new_status), notifier)


def transition(
    db: Session,
    booking: models.Booking,
    party: Party,
    new_status: BookingStatus,
    notifier: Notifier,
) -> models.Booking:
    current = booking.status
    if current == new_status:
        return booking
    BOOKING_MACHINE.check(party, current, new_status, missing_edge=Forbidden)
    if not crud_booking.update_booking_status(db, booking.id, current, new_status, datetime.utcnow()):
        raise Conflict(
            "Booking status changed while you were updating it",
            {"status": "stale"},
        )
    db.refresh(booking)
    logger.info(
        "Booking id=%s status changed from %s to %s by %s",
        booking.id,
        current.value,
        new_status.value,
        party.value,
    )
    payload = {"booking_id": booking.id, "status": new_status.value}
    if party is Party.SYSTEM:
        notify_parties(
            notifier,
            [booking.artist_id, booking.venue_id],
            NotificationType.BOOKING_STATUS_UPDATED,
            payload,
        )
    else:
        notifier.notify(
            user_id_for(booking, party.counterpart),
            NotificationType.BOOKING_STATUS_UPDATED,
            payload,
        )
    return booking

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, schemas
from ..models.booking_status import BookingStatus


def get_booking_by_id(db: Session, booking_id: int) -> Optional[models.Booking]:
    return db.query(models.Booking).filter(models.Booking.id == booking_id).first()


def list_bookings_for_user(
    db: Session,
    user_id: int,
    status: Optional[BookingStatus] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Booking]:
    query = db.query(models.Booking).filter(
        or_(models.Booking.artist_id == user_id, models.Booking.venue_id == user_id)
    )
    if status is not None:
        query = query.filter(models.Booking.status == status)
    return (
        query.order_by(models.Booking.event_date.desc(), models.Booking.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def create_booking(
    db: Session, booking_in: schemas.BookingCreate, venue_id: int
) -> models.Booking:
    db_booking = models.Booking(
        **booking_in.model_dump(),
        venue_id=venue_id,
        status=BookingStatus.PENDING,
    )
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    return db_booking


def update_booking_status(
    db: Session,
    booking_id: int,
    expected_status: BookingStatus,
    new_status: BookingStatus,
    changed_at: Optional[datetime] = None,
) -> bool:
    """Compare-and-swap the booking status.

    Returns ``False`` when the row no longer holds ``expected_status``; the
    caller decides how to report the lost race.
    """
    changed_at = changed_at or datetime.utcnow()
    updated = (
        db.query(models.Booking)
        .filter(
            models.Booking.id == booking_id,
            models.Booking.status == expected_status,
        )
        .update(
            {
                models.Booking.status: new_status,
                models.Booking.status_changed_at: changed_at,
                models.Booking.updated_at: changed_at,
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        db.rollback()
        return False
    db.commit()
    return True


def attach_rider_template(
    db: Session, booking: models.Booking, rider_template_id: int
) -> models.Booking:
    booking.rider_template_id = rider_template_id
    db.commit()
    db.refresh(booking)
    return booking


def get_confirmed_bookings_before(db: Session, cutoff: date) -> List[models.Booking]:
    """Return confirmed bookings whose event date is on or before ``cutoff``."""
    return (
        db.query(models.Booking)
        .filter(
            models.Booking.status == BookingStatus.CONFIRMED,
            models.Booking.event_date <= cutoff,
        )
        .order_by(models.Booking.event_date.asc(), models.Booking.id.asc())
        .all()
    )

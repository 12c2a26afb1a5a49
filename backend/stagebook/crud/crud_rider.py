from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..models import ContractStatus, ModificationStatus
from ..utils.errors import commit_or_conflict


# ─── Rider templates ─────────────────────────────────────────────────────────


def get_template(db: Session, template_id: int) -> Optional[models.RiderTemplate]:
    return (
        db.query(models.RiderTemplate)
        .filter(models.RiderTemplate.id == template_id)
        .first()
    )


def list_templates_for_artist(db: Session, artist_id: int) -> List[models.RiderTemplate]:
    return (
        db.query(models.RiderTemplate)
        .filter(models.RiderTemplate.artist_id == artist_id)
        .order_by(models.RiderTemplate.template_name.asc(), models.RiderTemplate.id.asc())
        .all()
    )


def create_template(
    db: Session, template_in: schemas.RiderTemplateCreate, artist_id: int
) -> models.RiderTemplate:
    db_template = models.RiderTemplate(
        **template_in.model_dump(exclude_unset=True),
        artist_id=artist_id,
    )
    db.add(db_template)
    db.commit()
    db.refresh(db_template)
    return db_template


def update_template(
    db: Session,
    db_template: models.RiderTemplate,
    template_in: schemas.RiderTemplateUpdate,
) -> models.RiderTemplate:
    for key, value in template_in.model_dump(exclude_unset=True).items():
        setattr(db_template, key, value)
    db.commit()
    db.refresh(db_template)
    return db_template


def delete_template(db: Session, db_template: models.RiderTemplate) -> None:
    # Bookings keep their row; the reference is nulled out
    db.query(models.Booking).filter(
        models.Booking.rider_template_id == db_template.id
    ).update({models.Booking.rider_template_id: None}, synchronize_session=False)
    db.delete(db_template)
    db.commit()


def template_has_signed_contract(db: Session, template_id: int) -> bool:
    return (
        db.query(models.Contract.id)
        .filter(
            models.Contract.rider_template_id == template_id,
            models.Contract.status == ContractStatus.SIGNED,
        )
        .first()
        is not None
    )


# ─── Acknowledgments ─────────────────────────────────────────────────────────


def get_acknowledgment(db: Session, ack_id: int) -> Optional[models.RiderAcknowledgment]:
    return (
        db.query(models.RiderAcknowledgment)
        .filter(models.RiderAcknowledgment.id == ack_id)
        .first()
    )


def get_acknowledgment_by_booking(
    db: Session, booking_id: int
) -> Optional[models.RiderAcknowledgment]:
    return (
        db.query(models.RiderAcknowledgment)
        .filter(models.RiderAcknowledgment.booking_id == booking_id)
        .first()
    )


def create_acknowledgment(db: Session, booking: models.Booking) -> models.RiderAcknowledgment:
    """Insert the acknowledgment for ``booking``.

    Raises ``IntegrityError`` (after rolling back) when another request
    created it first.
    """
    db_ack = models.RiderAcknowledgment(
        booking_id=booking.id,
        rider_template_id=booking.rider_template_id,
        artist_id=booking.artist_id,
        venue_id=booking.venue_id,
    )
    db.add(db_ack)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    db.refresh(db_ack)
    return db_ack


def update_acknowledgment(
    db: Session, db_ack: models.RiderAcknowledgment, **fields: Any
) -> models.RiderAcknowledgment:
    for key, value in fields.items():
        setattr(db_ack, key, value)
    commit_or_conflict(db, "Rider acknowledgment was modified concurrently")
    db.refresh(db_ack)
    return db_ack


# ─── Modification log ────────────────────────────────────────────────────────


def list_modifications(db: Session, ack_id: int) -> List[models.RiderModification]:
    return (
        db.query(models.RiderModification)
        .filter(models.RiderModification.acknowledgment_id == ack_id)
        .order_by(
            models.RiderModification.proposed_at.asc(),
            models.RiderModification.sequence.asc(),
        )
        .all()
    )


def get_last_modification(db: Session, ack_id: int) -> Optional[models.RiderModification]:
    return (
        db.query(models.RiderModification)
        .filter(models.RiderModification.acknowledgment_id == ack_id)
        .order_by(models.RiderModification.sequence.desc())
        .first()
    )


def count_modifications(db: Session, ack_id: int) -> int:
    return (
        db.query(func.count(models.RiderModification.id))
        .filter(models.RiderModification.acknowledgment_id == ack_id)
        .scalar()
        or 0
    )


def add_modification(
    db: Session,
    db_ack: models.RiderAcknowledgment,
    *,
    field_name: str,
    original_value: Any,
    proposed_value: str,
    reason: str,
    proposed_by: int,
    proposed_by_party: str,
    proposed_at: datetime,
    new_status: models.RiderAcknowledgmentStatus,
) -> models.RiderModification:
    """Append a log entry and move the acknowledgment in one commit.

    The previous pending entry, if any, is marked ``countered``.
    """
    last = get_last_modification(db, db_ack.id)
    if last is not None and last.status == ModificationStatus.PENDING:
        last.status = ModificationStatus.COUNTERED
        last.responded_at = proposed_at
    db_mod = models.RiderModification(
        acknowledgment_id=db_ack.id,
        sequence=(last.sequence + 1) if last is not None else 1,
        field_name=field_name,
        original_value=original_value,
        proposed_value=proposed_value,
        reason=reason,
        proposed_by=proposed_by,
        proposed_by_party=proposed_by_party,
        status=ModificationStatus.PENDING,
        proposed_at=proposed_at,
    )
    db.add(db_mod)
    db_ack.status = new_status
    # Bump the acknowledgment row so concurrent proposals collide on version
    db_ack.updated_at = proposed_at
    commit_or_conflict(db, "Rider acknowledgment was modified concurrently")
    db.refresh(db_mod)
    return db_mod


def resolve_acknowledgment(
    db: Session,
    db_ack: models.RiderAcknowledgment,
    *,
    status: models.RiderAcknowledgmentStatus,
    resolved_at: datetime,
    last_entry_status: Optional[ModificationStatus] = None,
    notes: Optional[str] = None,
) -> models.RiderAcknowledgment:
    """Set a terminal status and stamp the open log entry in one commit."""
    if last_entry_status is not None:
        last = get_last_modification(db, db_ack.id)
        if last is not None and last.status == ModificationStatus.PENDING:
            last.status = last_entry_status
            last.responded_at = resolved_at
    db_ack.status = status
    db_ack.resolved_at = resolved_at
    if notes:
        db_ack.notes = notes
    commit_or_conflict(db, "Rider acknowledgment was modified concurrently")
    db.refresh(db_ack)
    return db_ack

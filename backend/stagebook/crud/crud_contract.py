from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models
from ..models import ContractStatus
from ..utils.errors import commit_or_conflict


def get_contract_by_id(db: Session, contract_id: int) -> Optional[models.Contract]:
    return db.query(models.Contract).filter(models.Contract.id == contract_id).first()


def get_contract_by_version(
    db: Session, booking_id: int, version: int
) -> Optional[models.Contract]:
    return (
        db.query(models.Contract)
        .filter(
            models.Contract.booking_id == booking_id,
            models.Contract.version == version,
        )
        .first()
    )


def list_contracts_for_booking(db: Session, booking_id: int) -> List[models.Contract]:
    return (
        db.query(models.Contract)
        .filter(models.Contract.booking_id == booking_id)
        .order_by(models.Contract.version.asc())
        .all()
    )


def next_version(db: Session, booking_id: int) -> int:
    current = (
        db.query(func.max(models.Contract.version))
        .filter(models.Contract.booking_id == booking_id)
        .scalar()
    )
    return int(current or 0) + 1


def create_contract(
    db: Session,
    *,
    booking: models.Booking,
    version: int,
    contract_type: str,
    title: str,
    content: str,
    pdf_data: Optional[bytes],
    actor_id: Optional[int] = None,
    party: Optional[str] = None,
    supersede: bool = True,
) -> models.Contract:
    """Insert a new draft version.

    With ``supersede`` the booking's earlier draft / pending versions are
    cancelled in the same commit, each with a ``superseded`` audit entry.
    A concurrent insert of the same version surfaces as ``Conflict``.
    """
    if supersede:
        for older in list_contracts_for_booking(db, booking.id):
            if older.status in (ContractStatus.DRAFT, ContractStatus.PENDING_SIGNATURES):
                add_event(
                    db,
                    older,
                    "superseded",
                    actor_id,
                    party,
                    {"from_status": older.status.value, "superseded_by_version": version},
                )
                older.status = ContractStatus.CANCELLED
    db_contract = models.Contract(
        booking_id=booking.id,
        artist_id=booking.artist_id,
        venue_id=booking.venue_id,
        rider_template_id=booking.rider_template_id,
        version=version,
        contract_type=contract_type,
        title=title,
        content=content,
        pdf_data=pdf_data,
        status=ContractStatus.DRAFT,
    )
    db.add(db_contract)
    add_event(db, db_contract, "generated", actor_id, party, {"version": version})
    commit_or_conflict(db, "Another contract version was generated concurrently")
    db.refresh(db_contract)
    return db_contract


def update_contract_status(
    db: Session,
    db_contract: models.Contract,
    status: ContractStatus,
    **fields: Any,
) -> models.Contract:
    db_contract.status = status
    for key, value in fields.items():
        setattr(db_contract, key, value)
    commit_or_conflict(db, "Contract was modified concurrently")
    db.refresh(db_contract)
    return db_contract


def add_event(
    db: Session,
    db_contract: models.Contract,
    action: str,
    actor_id: Optional[int] = None,
    party: Optional[str] = None,
    details: Optional[dict] = None,
) -> models.ContractEvent:
    """Stage an audit entry; it is written by the caller's next commit."""
    event = models.ContractEvent(
        contract=db_contract,
        action=action,
        actor_id=actor_id,
        party=party,
        at=datetime.utcnow(),
        details=details,
    )
    db.add(event)
    return event


def list_events(db: Session, contract_id: int) -> List[models.ContractEvent]:
    return (
        db.query(models.ContractEvent)
        .filter(models.ContractEvent.contract_id == contract_id)
        .order_by(models.ContractEvent.at.asc(), models.ContractEvent.id.asc())
        .all()
    )

# backend/stagebook/api/api_rider.py

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import models, schemas
from ..crud import crud_rider
from ..database import get_db
from ..services import rider_workflow
from ..utils.errors import Conflict, NotFound
from ..utils.notifications import Notifier
from .dependencies import get_current_artist, get_current_user, get_notifier

router = APIRouter(tags=["riders"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


# ─── Rider templates ─────────────────────────────────────────────────────────


def _owned_template(db: Session, template_id: int, artist: models.User) -> models.RiderTemplate:
    template = crud_rider.get_template(db, template_id)
    if template is None or template.artist_id != artist.id:
        raise NotFound("Rider template not found", {"template_id": "not found"})
    return template


@router.get("/rider-templates/", response_model=List[schemas.RiderTemplateRead])
def list_rider_templates(
    db: Session = Depends(get_db),
    current_artist: models.User = Depends(get_current_artist),
):
    return crud_rider.list_templates_for_artist(db, current_artist.id)


@router.post(
    "/rider-templates/",
    response_model=schemas.RiderTemplateRead,
    status_code=status.HTTP_201_CREATED,
)
def create_rider_template(
    template_in: schemas.RiderTemplateCreate,
    db: Session = Depends(get_db),
    current_artist: models.User = Depends(get_current_artist),
):
    template = crud_rider.create_template(db, template_in, current_artist.id)
    logger.info("Rider template %s created by artist %s", template.id, current_artist.id)
    return template


@router.get("/rider-templates/{template_id}", response_model=schemas.RiderTemplateRead)
def read_rider_template(
    template_id: int,
    db: Session = Depends(get_db),
    current_artist: models.User = Depends(get_current_artist),
):
    return _owned_template(db, template_id, current_artist)


@router.put("/rider-templates/{template_id}", response_model=schemas.RiderTemplateRead)
def update_rider_template(
    template_id: int,
    template_in: schemas.RiderTemplateUpdate,
    db: Session = Depends(get_db),
    current_artist: models.User = Depends(get_current_artist),
):
    template = _owned_template(db, template_id, current_artist)
    if crud_rider.template_has_signed_contract(db, template.id):
        raise Conflict("This rider template is part of a signed contract and can no longer change")
    return crud_rider.update_template(db, template, template_in)


@router.delete("/rider-templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rider_template(
    template_id: int,
    db: Session = Depends(get_db),
    current_artist: models.User = Depends(get_current_artist),
):
    template = _owned_template(db, template_id, current_artist)
    if crud_rider.template_has_signed_contract(db, template.id):
        raise Conflict("This rider template is part of a signed contract and cannot be deleted")
    crud_rider.delete_template(db, template)
    return None


# ─── Acknowledgment workflow ─────────────────────────────────────────────────


@router.post(
    "/bookings/{booking_id}/rider/share",
    response_model=schemas.RiderAcknowledgmentRead,
)
def share_rider(
    booking_id: int,
    share_in: schemas.RiderShareRequest | None = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """Share the booking's rider with the venue (idempotent)."""
    return rider_workflow.share_rider(
        db,
        booking_id,
        current_user.id,
        notifier,
        rider_template_id=share_in.rider_template_id if share_in else None,
    )


@router.get(
    "/bookings/{booking_id}/rider/acknowledgment",
    response_model=schemas.RiderAcknowledgmentRead,
)
def read_booking_acknowledgment(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return rider_workflow.get_acknowledgment_for_booking(db, booking_id, current_user.id)


@router.get(
    "/rider-acknowledgments/{ack_id}",
    response_model=schemas.RiderAcknowledgmentRead,
)
def read_acknowledgment(
    ack_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return rider_workflow.get_acknowledgment(db, ack_id, current_user.id)


@router.post(
    "/rider-acknowledgments/{ack_id}/acknowledge",
    response_model=schemas.RiderAcknowledgmentRead,
)
def acknowledge_rider(
    ack_id: int,
    body: schemas.AcknowledgeRequest | None = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    return rider_workflow.acknowledge_rider(
        db, ack_id, current_user.id, body.notes if body else None, notifier
    )


@router.post(
    "/rider-acknowledgments/{ack_id}/proposals",
    response_model=schemas.RiderModificationRead,
    status_code=status.HTTP_201_CREATED,
)
def propose_modification(
    ack_id: int,
    proposal: schemas.ProposalCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    return rider_workflow.propose_modification(
        db,
        ack_id,
        current_user.id,
        proposal.field_name,
        proposal.proposed_value,
        proposal.reason,
        notifier,
    )


@router.post(
    "/rider-acknowledgments/{ack_id}/respond",
    response_model=schemas.RiderAcknowledgmentRead,
)
def respond_to_proposal(
    ack_id: int,
    response_in: schemas.ProposalResponse,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    return rider_workflow.respond_to_proposal(
        db,
        ack_id,
        current_user.id,
        response_in.decision,
        notifier,
        field_name=response_in.field_name,
        proposed_value=response_in.proposed_value,
        reason=response_in.reason,
    )


@router.post(
    "/rider-acknowledgments/{ack_id}/finalize",
    response_model=schemas.RiderAcknowledgmentRead,
)
def finalize_acknowledgment(
    ack_id: int,
    body: schemas.FinalizeRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    return rider_workflow.finalize(
        db, ack_id, current_user.id, body.outcome, notifier, notes=body.notes
    )


@router.get(
    "/rider-acknowledgments/{ack_id}/timeline",
    response_model=List[schemas.RiderModificationRead],
)
def read_timeline(
    ack_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return rider_workflow.get_timeline(db, ack_id, current_user.id)

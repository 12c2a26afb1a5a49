# backend/stagebook/api/api_contract.py

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services import contract_workflow
from ..services.contract_document import Renderer
from ..utils.notifications import Notifier
from .dependencies import get_current_user, get_notifier, get_renderer

router = APIRouter(tags=["contracts"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


@router.post(
    "/bookings/{booking_id}/contracts",
    response_model=schemas.ContractRead,
    status_code=status.HTTP_201_CREATED,
)
def generate_contract(
    booking_id: int,
    contract_in: schemas.ContractCreate | None = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    renderer: Renderer = Depends(get_renderer),
    notifier: Notifier = Depends(get_notifier),
):
    """Render a new contract version from the booking and its rider."""
    return contract_workflow.generate(
        db,
        booking_id,
        current_user.id,
        contract_in or schemas.ContractCreate(),
        renderer,
        notifier,
    )


@router.get("/bookings/{booking_id}/contracts", response_model=List[schemas.ContractRead])
def list_contracts(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return contract_workflow.list_contracts(db, booking_id, current_user.id)


@router.get("/bookings/{booking_id}/contracts/compare", response_model=schemas.ContractComparison)
def compare_contract_versions(
    booking_id: int,
    from_version: int = Query(..., ge=1),
    to_version: int = Query(..., ge=1),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    diff = contract_workflow.compare_versions(
        db, booking_id, current_user.id, from_version, to_version
    )
    return {
        "booking_id": booking_id,
        "from_version": from_version,
        "to_version": to_version,
        "diff": diff,
    }


@router.get("/contracts/{contract_id}", response_model=schemas.ContractRead)
def read_contract(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return contract_workflow.get_contract(db, contract_id, current_user.id)


@router.get("/contracts/{contract_id}/pdf", response_class=Response)
def download_contract_pdf(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    pdf_bytes = contract_workflow.get_contract_pdf(db, contract_id, current_user.id)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="contract_{contract_id}.pdf"'},
    )


@router.get("/contracts/{contract_id}/actions", response_model=schemas.ContractActions)
def read_contract_actions(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return contract_workflow.get_actions(db, contract_id, current_user.id)


@router.get("/contracts/{contract_id}/audit", response_model=List[schemas.ContractEventRead])
def read_contract_audit_trail(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Who generated, sent, signed, rejected or cancelled this version, oldest first."""
    return contract_workflow.get_audit_trail(db, contract_id, current_user.id)


@router.post("/contracts/{contract_id}/send",response_model=schemas.ContractRead)
def send_contract(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    return contract_workflow.send_for_signatures(db, contract_id, current_user.id, notifier)


@router.post("/contracts/{contract_id}/sign", response_model=schemas.ContractRead)
def sign_contract(
    contract_id: int,
    body: schemas.ContractSignRequest | None = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    return contract_workflow.sign(
        db,
        contract_id,
        current_user.id,
        notifier,
        party=body.party if body else None,
        signature=body.signature if body else None,
    )


@router.post("/contracts/{contract_id}/reject", response_model=schemas.ContractRead)
def reject_contract(
    contract_id: int,
    body: schemas.ContractRejectRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    return contract_workflow.reject(db, contract_id, current_user.id, body.reason, notifier)


@router.post("/contracts/{contract_id}/cancel", response_model=schemas.ContractRead)
def cancel_contract(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    return contract_workflow.cancel(db, contract_id, current_user.id, notifier)

# backend/stagebook/api/api_booking.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import models
from ..database import get_db
from ..models import BookingStatus
from ..schemas.booking import BookingCreate, BookingResponse, BookingStatusUpdate
from ..services import booking_lifecycle
from ..utils.notifications import Notifier
from .dependencies import get_current_user, get_notifier

router = APIRouter(tags=["bookings"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)
# ‣ Note: no prefix here.  main.py mounts this under /api/v1/bookings


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_in: BookingCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """Create a pending booking request from the authenticated venue."""
    return booking_lifecycle.create_booking(db, current_user, booking_in, notifier)


@router.get("/", response_model=List[BookingResponse])
def list_my_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return booking_lifecycle.list_bookings_for_user(db, current_user, status=status_filter)


@router.get("/{booking_id}", response_model=BookingResponse)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return booking_lifecycle.get_booking(db, booking_id, current_user.id)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: int,
    status_update: BookingStatusUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """Move the booking to ``status`` on behalf of the caller's side."""
    return booking_lifecycle.update_status(
        db, booking_id, current_user.id, status_update.status, notifier
    )

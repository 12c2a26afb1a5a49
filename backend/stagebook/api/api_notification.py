from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
import logging

from .. import models, schemas, crud
from ..database import get_db
from ..utils import error_response
from .dependencies import get_current_user

router = APIRouter(tags=["notifications"])

logger = logging.getLogger(__name__)


@router.get("/notifications/", response_model=List[schemas.NotificationResponse])
def read_my_notifications(
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud.crud_notification.get_notifications_for_user(
        db, current_user.id, skip=skip, limit=limit
    )


@router.patch(
    "/notifications/{notification_id}/read",
    response_model=schemas.NotificationResponse,
)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Mark a notification as read."""
    db_notif = crud.crud_notification.get_notification(db, notification_id)
    if db_notif is None or db_notif.user_id != current_user.id:
        raise error_response(
            "Notification not found",
            {"notification_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    return crud.crud_notification.mark_as_read(db, db_notif)

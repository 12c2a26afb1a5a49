from typing import Dict, Optional
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    field_errors: Dict[str, str],
    code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    return HTTPException(status_code=code, detail=detail)


class WorkflowError(Exception):
    """Base class for errors raised by the booking, rider and contract workflows.

    Each subclass maps to one HTTP status; the app-level exception handler
    renders them with the same ``{"message", "field_errors"}`` shape as
    :func:`error_response`.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "workflow_error"

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.field_errors: Dict[str, str] = dict(field_errors or {})

    def to_detail(self) -> dict:
        return {
            "message": self.message,
            "field_errors": self.field_errors,
            "code": self.code,
        }


class NotFound(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Forbidden(WorkflowError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class ValidationError(WorkflowError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class Conflict(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


def commit_or_conflict(db, message: str = "The record was modified concurrently") -> None:
    """Commit the session, translating lost races into :class:`Conflict`.

    ``StaleDataError`` comes from a ``version_id_col`` mismatch and
    ``IntegrityError`` from a uniqueness violation; both mean another writer
    got there first.
    """
    from sqlalchemy.exc import IntegrityError
    from sqlalchemy.orm.exc import StaleDataError

    try:
        db.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.rollback()
        logger.warning("%s: %s", message, exc)
        raise Conflict(message) from exc

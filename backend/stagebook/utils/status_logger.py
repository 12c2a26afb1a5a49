import logging
from sqlalchemy import event
from sqlalchemy.orm.attributes import NO_VALUE

from .. import models

logger = logging.getLogger(__name__)

# Booking status is written by a compare-and-swap UPDATE and logged in
# booking_lifecycle.transition instead.
STATUS_MODELS = (
    models.RiderAcknowledgment,
    models.Contract,
)


def _log_status_change(target, value, oldvalue, initiator):  # noqa: ANN001
    """SQLAlchemy attribute listener that logs status changes."""
    if oldvalue is NO_VALUE or oldvalue is None or oldvalue == value:
        return value
    logger.info(
        "%s id=%s status changed from %s to %s",
        type(target).__name__,
        getattr(target, "id", "unknown"),
        getattr(oldvalue, "value", oldvalue),
        getattr(value, "value", value),
    )
    return value


def register_status_listeners() -> None:
    """Attach the listener to every workflow model with a ``status`` attribute."""
    for model in STATUS_MODELS:
        if event.contains(model.status, "set", _log_status_change):
            continue
        event.listen(
            model.status,  # type: ignore[arg-type]
            "set",
            _log_status_change,
            retval=False,
            propagate=True,
        )


def unregister_status_listeners() -> None:
    for model in STATUS_MODELS:
        if event.contains(model.status, "set", _log_status_change):
            event.remove(model.status, "set", _log_status_change)

from .crud_user import user
from . import crud_booking
from . import crud_rider
from . import crud_contract
from . import crud_notification

__all__ = [
    "user",
    "crud_booking",
    "crud_rider",
    "crud_contract",
    "crud_notification",
]

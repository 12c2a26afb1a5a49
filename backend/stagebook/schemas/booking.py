from pydantic import BaseModel, Field
from typing import Optional, Annotated
from datetime import date, datetime
from decimal import Decimal

from ..models.booking_status import BookingStatus


# Shared properties for Booking
class BookingBase(BaseModel):
    event_date: date
    event_time: Optional[str] = None
    venue_name: str = Field(min_length=1)
    venue_address: Optional[str] = None
    total_fee: Optional[Annotated[Decimal, Field(ge=0)]] = None
    deposit_amount: Optional[Annotated[Decimal, Field(ge=0)]] = None
    event_details: Optional[str] = None


# Properties to receive on creation; the venue is the authenticated user
class BookingCreate(BookingBase):
    artist_id: int
    rider_template_id: Optional[int] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingResponse(BookingBase):
    id: int
    artist_id: int
    venue_id: int
    status: BookingStatus
    rider_template_id: Optional[int] = None
    status_changed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True
    }

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, Field, field_validator

from ..models.rider_acknowledgment import (
    RiderAcknowledgmentStatus,
    ModificationStatus,
)


class RiderTemplateFields(BaseModel):
    description: Optional[str] = None
    genre: Optional[str] = None

    performance_type: Optional[str] = None
    performance_duration: Optional[int] = Field(default=None, ge=0)
    setup_time_required: Optional[int] = Field(default=None, ge=0)
    soundcheck_time_required: Optional[int] = Field(default=None, ge=0)
    teardown_time_required: Optional[int] = Field(default=None, ge=0)
    number_of_performers: Optional[int] = Field(default=None, ge=1)

    pa_system_required: Optional[bool] = None
    microphone_type: Optional[str] = None
    monitor_mix_required: Optional[bool] = None
    di_boxes_needed: Optional[int] = Field(default=None, ge=0)

    lighting_required: Optional[bool] = None
    lighting_type: Optional[str] = None

    stage_dimensions: Optional[str] = None
    backdrop_required: Optional[bool] = None
    power_requirements: Optional[str] = None

    dressing_room_required: Optional[bool] = None
    catering_provided: Optional[bool] = None
    dietary_restrictions: Optional[List[str]] = None
    beverages: Optional[List[str]] = None
    accommodation_provided: Optional[bool] = None
    number_of_rooms: Optional[int] = Field(default=None, ge=0)
    parking_required: Optional[bool] = None
    travel_provided: Optional[bool] = None

    deposit_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    payment_method: Optional[str] = None
    cancellation_policy: Optional[str] = None

    special_requests: Optional[str] = None
    additional_notes: Optional[str] = None
    extras: Optional[Dict[str, Any]] = None


class RiderTemplateCreate(RiderTemplateFields):
    template_name: str = Field(min_length=1, max_length=255)


class RiderTemplateUpdate(RiderTemplateFields):
    template_name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class RiderTemplateRead(RiderTemplateFields):
    id: int
    artist_id: int
    template_name: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RiderShareRequest(BaseModel):
    rider_template_id: Optional[int] = None


class AcknowledgeRequest(BaseModel):
    notes: Optional[str] = None


class ProposalCreate(BaseModel):
    field_name: str
    proposed_value: str
    reason: str


class ProposalResponse(BaseModel):
    decision: Literal["accept", "counter_propose", "reject"]
    field_name: Optional[str] = None
    proposed_value: Optional[str] = None
    reason: Optional[str] = None

    @field_validator("decision", mode="before")
    @classmethod
    def _normalise_decision(cls, v):
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_").replace(" ", "_")
        return v


class FinalizeRequest(BaseModel):
    outcome: Literal["accepted", "rejected"]
    notes: Optional[str] = None


class RiderModificationRead(BaseModel):
    id: int
    sequence: int
    field_name: str
    original_value: Optional[Any] = None
    proposed_value: str
    reason: str
    proposed_by: int
    proposed_by_party: str
    status: ModificationStatus
    proposed_at: datetime
    responded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RiderAcknowledgmentRead(BaseModel):
    id: int
    booking_id: int
    rider_template_id: Optional[int] = None
    artist_id: int
    venue_id: int
    status: RiderAcknowledgmentStatus
    notes: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    modifications: List[RiderModificationRead] = []

    model_config = {"from_attributes": True}

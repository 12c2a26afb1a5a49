from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, List, Literal

from pydantic import BaseModel, Field

from ..models.contract import ContractStatus


class ContractCreate(BaseModel):
    contract_type: str = "performance"
    title: Optional[str] = Field(default=None, max_length=255)
    terms: Optional[str] = None


class ContractSignRequest(BaseModel):
    party: Optional[Literal["artist", "venue"]] = None
    signature: Optional[str] = None


class ContractRejectRequest(BaseModel):
    reason: str


class ContractRead(BaseModel):
    id: int
    booking_id: int
    artist_id: int
    venue_id: int
    rider_template_id: Optional[int] = None
    version: int
    contract_type: str
    title: str
    content: str
    status: ContractStatus
    artist_signed_at: Optional[datetime] = None
    venue_signed_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    cancelled_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ContractActions(BaseModel):
    can_sign: bool
    can_reject: bool
    can_cancel: bool
    can_send: bool
    actions: List[str]


class ContractComparison(BaseModel):
    booking_id: int
    from_version: int
    to_version: int
    diff: str


class ContractEventRead(BaseModel):
    id: int
    contract_id: int
    action: str
    actor_id: Optional[int] = None
    party: Optional[str] = None
    at: datetime
    details: Optional[Dict[str, Any]] = None

    model_config = {"from_attributes": True}

"""Pydantic schemas for contribution items."""
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, Field

from partake.models.contribution import ContributionStatus, ContributionType, Priority


class ContributionItemFields(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    category: Optional[str] = Field(default=None, max_length=50)
    type: ContributionType
    quantity: int = Field(default=1, ge=1)
    time_commitment: Optional[int] = Field(default=None, ge=0)
    estimated_cost: Optional[Decimal] = Field(default=None, ge=0)
    priority: Priority
    notes: Optional[str] = Field(default=None, max_length=500)

    def service_kwargs(self) -> dict[str, Any]:
        fields = self.model_dump(include=set(ContributionItemFields.model_fields), exclude={"type"})
        fields["item_type"] = self.type
        return fields


class ContributionItemCreate(ContributionItemFields):
    event_id: int
    actor_user_id: str


class ContributionItemOut(BaseModel):
    id: int
    event_id: int
    name: str
    category: Optional[str] = None
    type: ContributionType
    quantity: int
    time_commitment: Optional[int] = None
    estimated_cost: Optional[Decimal] = None
    priority: Priority
    status: ContributionStatus
    assigned_to: Optional[str] = None
    completed: bool
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ClaimRequest(BaseModel):
    user_id: str


class ContributionSummaryOut(BaseModel):
    event_id: int
    total_items: int
    available: int
    claimed: int
    confirmed: int
    completed: int
    unclaimed_must_have: int
    estimated_cost_total: Decimal
    claimed_cost_total: Decimal

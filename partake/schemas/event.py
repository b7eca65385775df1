"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from partake.models.event import EventStatus, EventVisibility
from partake.schemas.contribution import ContributionItemFields


class EventCreate(BaseModel):
    title: str
    organizer_id: str
    max_attendees: int = Field(ge=1)
    cost_per_person: Decimal = Field(default=Decimal("0.00"), ge=0)
    status: str = EventStatus.draft.value
    visibility: str = EventVisibility.public.value
    contribution_items: list[ContributionItemFields] = []


class EventOut(BaseModel):
    event_id: int
    title: str
    organizer_id: str
    max_attendees: int
    cost_per_person: Decimal
    status: EventStatus
    visibility: EventVisibility
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class EventActorRequest(BaseModel):
    actor_user_id: str


class EventCancelRequest(BaseModel):
    actor_user_id: str
    reason: Optional[str] = None


class BillingSummaryOut(BaseModel):
    event_id: int
    active_participants: int
    total_due: Decimal
    total_paid: Decimal
    total_remaining: Decimal
    unpaid_participants: int

"""Pydantic schemas for event attendees."""
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from partake.models.attendee import AttendeeStatus, PaymentStatus


class JoinRequest(BaseModel):
    event_id: int
    user_id: str


class AttendeeOut(BaseModel):
    id: int
    event_id: int
    user_id: str
    status: AttendeeStatus
    payment_amount: Decimal
    amount_paid: Decimal
    payment_status: PaymentStatus
    remaining_payment: Decimal = Decimal("0.00")
    joined_at: datetime
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None
    account_deleted: bool = False

    model_config = {"from_attributes": True}


class ApprovalOut(BaseModel):
    attendee: AttendeeOut
    capacity_full: bool
    message: str


class RemovalOut(BaseModel):
    removed: AttendeeOut
    promoted: Optional[AttendeeOut] = None


class PaymentRequest(BaseModel):
    # Non-positive amounts are accepted and ignored.
    amount: Decimal


class PaymentAmountRequest(BaseModel):
    payment_amount: Decimal = Field(ge=0)


class PendingCountOut(BaseModel):
    organizer_id: str
    pending_requests: int

"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from partake.models.user import AccountDeletionStatus


class UserCreate(BaseModel):
    display_name: str
    email: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    display_name: str
    email: Optional[str] = None
    enabled: bool
    deleted_at: Optional[datetime] = None
    deletion_status: AccountDeletionStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

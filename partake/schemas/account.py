"""Pydantic schemas for account management."""
from typing import Optional
from pydantic import BaseModel


class DeleteAccountRequest(BaseModel):
    confirmation: str
    reason: Optional[str] = None


class DeactivationStatusOut(BaseModel):
    user_id: str
    deactivated: bool

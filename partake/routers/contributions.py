"""Contribution item routes — the organizer's list and attendees' claims."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from partake.database import get_db
from partake.schemas.contribution import (
    ClaimRequest, ContributionItemCreate, ContributionItemOut, ContributionSummaryOut,
)
from partake.schemas.event import EventActorRequest
from partake.services import contribution_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ContributionItemOut, status_code=status.HTTP_201_CREATED)
def add_item(payload: ContributionItemCreate, db: Session = Depends(get_db)):
    """Add an item to an event (organizer only)."""
    return contribution_service.add_item(
        db, payload.event_id, payload.actor_user_id, **payload.service_kwargs(),
    )


@router.get("/events/{event_id}", response_model=list[ContributionItemOut])
def list_items(
    event_id: int,
    available_only: bool = Query(False, description="Only unclaimed items, must-haves first"),
    db: Session = Depends(get_db),
):
    if available_only:
        return contribution_service.available_items(db, event_id)
    return contribution_service.list_items(db, event_id)


@router.get("/events/{event_id}/unclaimed-must-have", response_model=list[ContributionItemOut])
def unclaimed_must_have(event_id: int, db: Session = Depends(get_db)):
    return contribution_service.unclaimed_must_have(db, event_id)


@router.get("/events/{event_id}/summary", response_model=ContributionSummaryOut)
def contribution_summary(event_id: int, db: Session = Depends(get_db)):
    return contribution_service.contribution_summary(db, event_id)


@router.get("/users/{user_id}", response_model=list[ContributionItemOut])
def user_contributions(user_id: str, db: Session = Depends(get_db)):
    """Items the user holds in live events."""
    return contribution_service.contributions_for_user(db, user_id)


@router.post("/{item_id}/claim", response_model=ContributionItemOut)
def claim_item(item_id: int, payload: ClaimRequest, db: Session = Depends(get_db)):
    return contribution_service.claim_item(db, item_id, payload.user_id)


@router.post("/{item_id}/release", response_model=ContributionItemOut)
def release_item(item_id: int, payload: ClaimRequest, db: Session = Depends(get_db)):
    return contribution_service.release_item(db, item_id, payload.user_id)


@router.post("/{item_id}/confirm", response_model=ContributionItemOut)
def confirm_item(item_id: int, payload: EventActorRequest, db: Session = Depends(get_db)):
    return contribution_service.confirm_item(db, item_id, payload.actor_user_id)


@router.post("/{item_id}/complete", response_model=ContributionItemOut)
def complete_item(item_id: int, payload: EventActorRequest, db: Session = Depends(get_db)):
    return contribution_service.mark_completed(db, item_id, payload.actor_user_id)

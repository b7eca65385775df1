"""Event API routes — delegates to event_service and capacity_service."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from partake.database import get_db
from partake.models.attendee import AttendeeStatus
from partake.routers.attendees import attendee_out
from partake.schemas.attendee import AttendeeOut
from partake.schemas.event import (
    BillingSummaryOut, EventActorRequest, EventCancelRequest, EventCreate, EventOut,
)
from partake.services import attendance_service, capacity_service, event_service
from partake.services.pagination import CursorPage, map_page

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    return event_service.create_event(
        db=db,
        organizer_id=payload.organizer_id,
        title=payload.title,
        max_attendees=payload.max_attendees,
        cost_per_person=payload.cost_per_person,
        event_status=payload.status,
        event_visibility=payload.visibility,
        contribution_items=[item.service_kwargs() for item in payload.contribution_items],
    )


@router.get("/", response_model=CursorPage[EventOut])
def list_public_events(
    cursor: Optional[str] = Query(None, description="Cursor from the previous page"),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """Public, open events in creation order using keyset pagination."""
    logger.debug("Listing public events (cursor=%s, limit=%s)", cursor, limit)
    page = event_service.list_public_events(db, cursor=cursor, limit=limit)
    return map_page(page, EventOut.model_validate)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: int, db: Session = Depends(get_db)):
    return event_service.get_event(db, event_id)


@router.post("/{event_id}/publish", response_model=EventOut)
def publish_event(event_id: int, payload: EventActorRequest, db: Session = Depends(get_db)):
    return event_service.publish_event(db, event_id, payload.actor_user_id)


@router.post("/{event_id}/cancel", response_model=EventOut)
def cancel_event(event_id: int, payload: EventCancelRequest, db: Session = Depends(get_db)):
    """Cancel an event (soft delete, organizer only)."""
    return event_service.cancel_event(db, event_id, payload.actor_user_id, payload.reason)


@router.get("/{event_id}/attendees", response_model=CursorPage[AttendeeOut])
def list_attendees(
    event_id: int,
    cursor: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    attendee_status: Optional[AttendeeStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    event_service.get_event(db, event_id)
    page = attendance_service.list_attendees(db, event_id, cursor=cursor, limit=limit, status=attendee_status)
    return map_page(page, attendee_out)


@router.get("/{event_id}/waitlist", response_model=list[AttendeeOut])
def get_waitlist(event_id: int, db: Session = Depends(get_db)):
    """Waitlisted attendees in promotion order."""
    return [attendee_out(a) for a in capacity_service.waitlist_for(db, event_id)]


@router.get("/{event_id}/unpaid", response_model=list[AttendeeOut])
def unpaid_attendees(event_id: int, db: Session = Depends(get_db)):
    """Approved attendees who have not paid in full."""
    event_service.get_event(db, event_id)
    return [attendee_out(a) for a in attendance_service.find_unpaid_attendees(db, event_id)]


@router.get("/{event_id}/billing", response_model=BillingSummaryOut)
def billing_summary(event_id: int, db: Session = Depends(get_db)):
    event_service.get_event(db, event_id)
    return attendance_service.billing_summary(db, event_id)

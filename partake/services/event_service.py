"""Event service — organizer-side event lifecycle and listings.

Responsibilities:
- Authorization hook: only the organizer may publish or cancel
- Cancellation safety (soft delete + reason, no double cancel)
- Keyset listings by creation order: public (visible, open) and all events
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Any

from sqlalchemy.orm import Session

from partake.clock import utcnow
from partake.exceptions import Forbidden, InvalidState, NotFound, ValidationError
from partake.models.event import Event, EventStatus, EventVisibility
from partake.models.user import User
from partake.services import contribution_service, payment_ledger
from partake.services.capacity_service import event_section
from partake.services.pagination import CursorPage, paginate

logger = logging.getLogger(__name__)

_CREATABLE_STATUSES = (EventStatus.draft, EventStatus.active)


def _check_authorization(event: Event, actor_user_id: str) -> None:
    """Only the organizer may change an event's lifecycle."""
    if event.organizer_id != actor_user_id:
        raise Forbidden("Only the organizer may modify this event")


def get_event(db: Session, event_id: int) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFound("Event not found")
    return event


def create_event(
    db: Session,
    organizer_id: str,
    title: str,
    max_attendees: int,
    cost_per_person: Any = Decimal("0.00"),
    event_status: str = EventStatus.draft.value,
    event_visibility: str = EventVisibility.public.value,
    contribution_items: Optional[list[dict[str, Any]]] = None,
) -> Event:
    """Create an event, optionally with its initial contribution items in one transaction."""
    organizer = db.query(User).filter(User.user_id == organizer_id).first()
    if not organizer:
        raise NotFound("Organizer not found")
    if not organizer.enabled:
        raise InvalidState("Deactivated accounts cannot organize events")
    if max_attendees < 1:
        raise ValidationError("max_attendees must be at least 1")
    cost = payment_ledger.to_amount(cost_per_person)
    if cost < payment_ledger.ZERO:
        raise ValidationError("cost_per_person cannot be negative")
    try:
        status = EventStatus(event_status)
    except ValueError:
        raise ValidationError(f"Invalid event status: {event_status}")
    if status not in _CREATABLE_STATUSES:
        raise ValidationError(f"New events must be {' or '.join(s.value for s in _CREATABLE_STATUSES)}")
    try:
        visibility = EventVisibility(event_visibility)
    except ValueError:
        raise ValidationError(f"Invalid event visibility: {event_visibility}")

    event = Event(
        title=title,
        organizer_id=organizer_id,
        max_attendees=max_attendees,
        cost_per_person=cost,
        status=status,
        visibility=visibility,
    )
    db.add(event)
    try:
        db.flush()
        for fields in contribution_items or []:
            db.add(contribution_service.build_item(event, **fields))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(event)
    logger.info("Created event '%s' (%s) by organizer %s with %d contribution items",
                title, event.event_id, organizer_id, len(contribution_items or []))
    return event


def publish_event(db: Session, event_id: int, actor_user_id: str) -> Event:
    """DRAFT -> ACTIVE, opening the event for join requests."""
    with event_section(db, event_id) as event:
        _check_authorization(event, actor_user_id)
        if event.status != EventStatus.draft:
            raise InvalidState(f"Only draft events can be published (event is {event.status.value})")
        event.status = EventStatus.active
        db.commit()
        db.refresh(event)
    logger.info("Published event %s", event_id)
    return event


def cancel_event(
    db: Session,
    event_id: int,
    actor_user_id: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Event:
    """Soft-cancel an event; attendee records are kept for the organizer."""
    with event_section(db, event_id) as event:
        _check_authorization(event, actor_user_id)
        if event.status in (EventStatus.cancelled, EventStatus.archived):
            raise InvalidState(f"Event is already {event.status.value}")
        event.status = EventStatus.cancelled
        event.cancellation_reason = reason or "Cancelled by organizer"
        event.cancelled_at = now or utcnow()
        db.commit()
        db.refresh(event)
    logger.info("Cancelled event %s (reason: %s)", event_id, reason)
    return event


def list_public_events(
    db: Session,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
) -> CursorPage:
    """Discoverable events: PUBLIC and currently ACTIVE or FULL."""
    query = db.query(Event).filter(
        Event.visibility == EventVisibility.public,
        Event.status.in_([EventStatus.active, EventStatus.full]),
    )
    return paginate(query, Event.event_id, cursor, limit, kind="event", key_of=lambda e: e.event_id)


def list_events(
    db: Session,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    include_cancelled: bool = False,
    organizer_id: Optional[str] = None,
) -> CursorPage:
    """Every event regardless of visibility; cancelled ones only on request."""
    query = db.query(Event)
    if organizer_id:
        query = query.filter(Event.organizer_id == organizer_id)
    if not include_cancelled:
        query = query.filter(Event.status != EventStatus.cancelled)
    return paginate(query, Event.event_id, cursor, limit, kind="event", key_of=lambda e: e.event_id)

"""Capacity & waitlist manager.

Keeps count(APPROVED) <= event.max_attendees for every event and promotes
the earliest-joined waitlisted attendee whenever a seat frees up. Every
operation runs inside a per-event critical section (row lock on the event
plus a process-local keyed lock) around check -> transition -> commit, so
two concurrent approvals cannot both pass the capacity check.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from partake.clock import utcnow
from partake.exceptions import InvalidState, InvalidTransition, NotFound
from partake.locks import event_locks
from partake.models.attendee import AttendeeStatus, EventAttendee
from partake.models.event import CLOSED_STATUSES, Event, EventStatus
from partake.models.user import User
from partake.services import attendance_service, contribution_service

logger = logging.getLogger(__name__)


@dataclass
class ApprovalOutcome:
    """Result of an approval request.

    `capacity_full` is advisory: the attendee was placed on the waitlist
    instead of approved, which is a success, not an error.
    """

    attendee: EventAttendee
    capacity_full: bool = False


@dataclass
class RemovalOutcome:
    removed: EventAttendee
    promoted: Optional[EventAttendee] = None


@contextmanager
def event_section(db: Session, event_id: int) -> Iterator[Event]:
    """Exclusive section over one event's attendee set."""
    with event_locks.hold(event_id):
        event = db.query(Event).filter(Event.event_id == event_id).with_for_update().first()
        if not event:
            raise NotFound("Event not found")
        try:
            yield event
        except Exception:
            db.rollback()
            raise


def _attendee_of(db: Session, event: Event, attendee_id: int) -> EventAttendee:
    attendee = attendance_service.get_attendee(db, attendee_id, for_update=True)
    if attendee.event_id != event.event_id:
        raise NotFound("Attendee not found for this event")
    return attendee


def approved_count(db: Session, event_id: int) -> int:
    return attendance_service.count_by_event_and_status(db, event_id, AttendeeStatus.approved)


def _sync_event_status(event: Event, approved: int) -> None:
    if event.status == EventStatus.active and approved >= event.max_attendees:
        event.status = EventStatus.full
        logger.info("Event %s is now full (%d/%d)", event.event_id, approved, event.max_attendees)
    elif event.status == EventStatus.full and approved < event.max_attendees:
        event.status = EventStatus.active
        logger.info("Event %s has open seats again (%d/%d)", event.event_id, approved, event.max_attendees)


def approve_with_capacity(
    db: Session,
    event_id: int,
    attendee_id: int,
    now: Optional[datetime] = None,
) -> ApprovalOutcome:
    """Approve if a seat is free, otherwise waitlist and report capacity_full."""
    with event_section(db, event_id) as event:
        if event.status in CLOSED_STATUSES:
            raise InvalidState(f"Event is {event.status.value}; attendance is frozen")
        attendee = _attendee_of(db, event, attendee_id)
        if attendee.status not in (AttendeeStatus.pending, AttendeeStatus.waitlist):
            raise InvalidTransition(f"Cannot approve attendee in status {attendee.status.value}")
        owner = db.query(User).filter(User.user_id == attendee.user_id).first()
        if owner is not None and owner.deleted_at is not None:
            raise InvalidState("Account is scheduled for deletion and cannot take a seat")

        approved = approved_count(db, event.event_id)
        capacity_full = approved >= event.max_attendees
        if capacity_full:
            if attendee.status == AttendeeStatus.pending:
                attendance_service.waitlist(attendee)
        else:
            attendance_service.approve(attendee, now or utcnow())
            approved += 1
        _sync_event_status(event, approved)
        db.commit()
        db.refresh(attendee)

    if capacity_full:
        logger.warning(
            "Event %s at capacity (%d); attendee %s placed on waitlist",
            event_id, event.max_attendees, attendee_id,
        )
    else:
        logger.info("Approved attendee %s for event %s", attendee_id, event_id)
    return ApprovalOutcome(attendee=attendee, capacity_full=capacity_full)


def decline_request(db: Session, event_id: int, attendee_id: int) -> EventAttendee:
    with event_section(db, event_id) as event:
        attendee = _attendee_of(db, event, attendee_id)
        attendance_service.decline(attendee)
        db.commit()
        db.refresh(attendee)
    logger.info("Declined attendee %s for event %s", attendee_id, event_id)
    return attendee


def waitlist_request(db: Session, event_id: int, attendee_id: int) -> EventAttendee:
    """Explicitly park a pending request on the waitlist."""
    with event_section(db, event_id) as event:
        attendee = _attendee_of(db, event, attendee_id)
        attendance_service.waitlist(attendee)
        db.commit()
        db.refresh(attendee)
    logger.info("Waitlisted attendee %s for event %s", attendee_id, event_id)
    return attendee


def on_removal(db: Session, event: Event, now: Optional[datetime] = None) -> Optional[EventAttendee]:
    """Promote at most one waitlisted attendee into a freed seat.

    Must be called inside `event_section` after the removal is flushed.
    """
    if event.status in CLOSED_STATUSES:
        return None
    if approved_count(db, event.event_id) >= event.max_attendees:
        return None
    head = attendance_service.next_promotable(db, event.event_id)
    if head is None:
        return None
    promoted = attendance_service.approve(head, now or utcnow())
    db.flush()
    logger.info("Promoted attendee %s from waitlist of event %s", promoted.id, event.event_id)
    return promoted


def refill_seat(db: Session, event: Event, now: Optional[datetime] = None) -> Optional[EventAttendee]:
    """Promote into a freed seat, then resync ACTIVE/FULL with the approved count.

    Must be called inside `event_section` after the change is flushed.
    """
    promoted = on_removal(db, event, now)
    _sync_event_status(event, approved_count(db, event.event_id))
    return promoted


def remove_with_promotion(
    db: Session,
    event_id: int,
    attendee_id: int,
    now: Optional[datetime] = None,
) -> RemovalOutcome:
    """Remove an approved attendee and hand the seat to the head of the waitlist."""
    with event_section(db, event_id) as event:
        attendee = _attendee_of(db, event, attendee_id)
        attendance_service.remove(attendee)
        contribution_service.release_claims(db, event.event_id, attendee.user_id)
        db.flush()
        promoted = refill_seat(db, event, now)
        db.commit()
        db.refresh(attendee)
        if promoted is not None:
            db.refresh(promoted)
    logger.info("Removed attendee %s from event %s", attendee_id, event_id)
    return RemovalOutcome(removed=attendee, promoted=promoted)


def waitlist_for(db: Session, event_id: int) -> list[EventAttendee]:
    if not db.query(Event).filter(Event.event_id == event_id).first():
        raise NotFound("Event not found")
    return attendance_service.find_waitlist(db, event_id)

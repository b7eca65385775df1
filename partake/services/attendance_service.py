"""Attendance state machine — one attendee's lifecycle within one event.

    PENDING  -> APPROVED | DECLINED | WAITLIST
    WAITLIST -> APPROVED | DECLINED
    APPROVED -> REMOVED

DECLINED and REMOVED are terminal: a user in either state needs a new
attendee record to try again. The transition functions only mutate the
record; capacity decisions and commits belong to capacity_service.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from partake.clock import utcnow
from partake.exceptions import Conflict, InvalidState, InvalidTransition, NotFound, ValidationError
from partake.locks import attendee_locks
from partake.models.attendee import AttendeeStatus, EventAttendee, PaymentStatus
from partake.models.event import CLOSED_STATUSES, Event, EventStatus
from partake.models.user import User
from partake.services import payment_ledger
from partake.services.pagination import CursorPage, paginate

logger = logging.getLogger(__name__)

ACCOUNT_DELETED_NOTE = "Attendee account has been deleted"

_ALLOWED_FROM: dict[AttendeeStatus, frozenset[AttendeeStatus]] = {
    AttendeeStatus.approved: frozenset({AttendeeStatus.pending, AttendeeStatus.waitlist}),
    AttendeeStatus.declined: frozenset({AttendeeStatus.pending, AttendeeStatus.waitlist}),
    AttendeeStatus.waitlist: frozenset({AttendeeStatus.pending}),
    AttendeeStatus.removed: frozenset({AttendeeStatus.approved}),
}


def _transition(attendee: EventAttendee, target: AttendeeStatus) -> None:
    if attendee.status not in _ALLOWED_FROM[target]:
        raise InvalidTransition(
            f"Cannot move attendee {attendee.id} from {attendee.status.value} to {target.value}"
        )
    attendee.status = target


def _recompute_payment_status(attendee: EventAttendee) -> None:
    attendee.payment_status = payment_ledger.derive_payment_status(
        attendee.payment_amount, attendee.amount_paid, attendee.payment_status or PaymentStatus.unpaid
    )


# ---------------------------------------------------------------------------
# Transitions (in-memory; the caller persists)
# ---------------------------------------------------------------------------
def approve(attendee: EventAttendee, now: Optional[datetime] = None) -> EventAttendee:
    _transition(attendee, AttendeeStatus.approved)
    attendee.approved_at = now or utcnow()
    _recompute_payment_status(attendee)
    return attendee


def decline(attendee: EventAttendee) -> EventAttendee:
    _transition(attendee, AttendeeStatus.declined)
    return attendee


def waitlist(attendee: EventAttendee) -> EventAttendee:
    _transition(attendee, AttendeeStatus.waitlist)
    return attendee


def remove(attendee: EventAttendee) -> EventAttendee:
    _transition(attendee, AttendeeStatus.removed)
    return attendee


def apply_payment(attendee: EventAttendee, amount: Any) -> EventAttendee:
    """Add a payment to the running total; non-positive amounts are ignored."""
    amount = payment_ledger.to_amount(amount)
    if amount <= payment_ledger.ZERO:
        return attendee
    attendee.amount_paid = payment_ledger.add_payment(attendee.amount_paid, amount)
    _recompute_payment_status(attendee)
    return attendee


def remaining_payment(attendee: EventAttendee) -> Decimal:
    return payment_ledger.remaining(attendee.payment_amount, attendee.amount_paid)


def is_active_participant(attendee: EventAttendee) -> bool:
    """Exactly APPROVED; the basis of every capacity and billing query."""
    return attendee.status == AttendeeStatus.approved


def mark_account_deleted(attendee: EventAttendee) -> EventAttendee:
    """Annotate the record as belonging to a deleted account; history is untouched."""
    attendee.account_deleted = True
    attendee.notes = ACCOUNT_DELETED_NOTE
    return attendee


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def get_attendee(db: Session, attendee_id: int, for_update: bool = False) -> EventAttendee:
    query = db.query(EventAttendee).filter(EventAttendee.id == attendee_id)
    if for_update:
        query = query.with_for_update()
    attendee = query.first()
    if not attendee:
        raise NotFound("Attendee not found")
    return attendee


def find_by_event_and_user(db: Session, event_id: int, user_id: str) -> Optional[EventAttendee]:
    return (
        db.query(EventAttendee)
        .filter(EventAttendee.event_id == event_id, EventAttendee.user_id == user_id)
        .first()
    )


def find_by_user_id(db: Session, user_id: str) -> list[EventAttendee]:
    return db.query(EventAttendee).filter(EventAttendee.user_id == user_id).all()


def count_by_event_and_status(db: Session, event_id: int, status: AttendeeStatus) -> int:
    return (
        db.query(func.count(EventAttendee.id))
        .filter(EventAttendee.event_id == event_id, EventAttendee.status == status)
        .scalar()
    )


def find_waitlist(db: Session, event_id: int) -> list[EventAttendee]:
    """Waitlisted attendees, oldest join first; equal join times fall back to lower id."""
    return (
        db.query(EventAttendee)
        .filter(EventAttendee.event_id == event_id, EventAttendee.status == AttendeeStatus.waitlist)
        .order_by(EventAttendee.joined_at.asc(), EventAttendee.id.asc())
        .all()
    )


def next_promotable(db: Session, event_id: int) -> Optional[EventAttendee]:
    """Head of the waitlist, skipping accounts scheduled for deletion."""
    return (
        db.query(EventAttendee)
        .join(User, User.user_id == EventAttendee.user_id)
        .filter(
            EventAttendee.event_id == event_id,
            EventAttendee.status == AttendeeStatus.waitlist,
            User.deleted_at.is_(None),
        )
        .order_by(EventAttendee.joined_at.asc(), EventAttendee.id.asc())
        .first()
    )


def find_unpaid_attendees(db: Session, event_id: int) -> list[EventAttendee]:
    """Active participants who still owe something, oldest join first."""
    return (
        db.query(EventAttendee)
        .filter(
            EventAttendee.event_id == event_id,
            EventAttendee.status == AttendeeStatus.approved,
            EventAttendee.payment_status != PaymentStatus.paid,
        )
        .order_by(EventAttendee.joined_at.asc(), EventAttendee.id.asc())
        .all()
    )


def _pending_for_organizer_query(db: Session, organizer_id: str):
    return (
        db.query(EventAttendee)
        .join(Event, Event.event_id == EventAttendee.event_id)
        .filter(Event.organizer_id == organizer_id, EventAttendee.status == AttendeeStatus.pending)
    )


def find_pending_requests_for_organizer(db: Session, organizer_id: str) -> list[EventAttendee]:
    """Join requests awaiting a decision across every event the user organizes."""
    return (
        _pending_for_organizer_query(db, organizer_id)
        .order_by(EventAttendee.joined_at.asc(), EventAttendee.id.asc())
        .all()
    )


def count_pending_requests_for_organizer(db: Session, organizer_id: str) -> int:
    return _pending_for_organizer_query(db, organizer_id).count()


def find_pending_requests_by_user(db: Session, user_id: str) -> list[EventAttendee]:
    """A user's own undecided requests, newest first."""
    return (
        db.query(EventAttendee)
        .filter(EventAttendee.user_id == user_id, EventAttendee.status == AttendeeStatus.pending)
        .order_by(EventAttendee.joined_at.desc(), EventAttendee.id.desc())
        .all()
    )


def list_attendees(
    db: Session,
    event_id: int,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    status: Optional[AttendeeStatus] = None,
) -> CursorPage:
    query = db.query(EventAttendee).filter(EventAttendee.event_id == event_id)
    if status is not None:
        query = query.filter(EventAttendee.status == status)
    return paginate(query, EventAttendee.id, cursor, limit, kind="attendee", key_of=lambda a: a.id)


def list_active_participations(db: Session, user_id: str) -> list[EventAttendee]:
    """Approved participations of a user in events that are still live."""
    return (
        db.query(EventAttendee)
        .join(Event, Event.event_id == EventAttendee.event_id)
        .filter(
            EventAttendee.user_id == user_id,
            EventAttendee.status == AttendeeStatus.approved,
            Event.status.in_([EventStatus.active, EventStatus.full]),
        )
        .order_by(EventAttendee.joined_at.asc())
        .all()
    )


def billing_summary(db: Session, event_id: int) -> dict[str, Any]:
    """Totals over active participants of one event."""
    active = (
        db.query(EventAttendee)
        .filter(EventAttendee.event_id == event_id, EventAttendee.status == AttendeeStatus.approved)
        .all()
    )
    total_due = sum((payment_ledger.to_amount(a.payment_amount) for a in active), payment_ledger.ZERO)
    total_paid = sum((payment_ledger.to_amount(a.amount_paid) for a in active), payment_ledger.ZERO)
    return {
        "event_id": event_id,
        "active_participants": len(active),
        "total_due": total_due,
        "total_paid": total_paid,
        "total_remaining": sum((remaining_payment(a) for a in active), payment_ledger.ZERO),
        "unpaid_participants": sum(1 for a in active if a.payment_status != PaymentStatus.paid),
    }


# ---------------------------------------------------------------------------
# Persisted operations
# ---------------------------------------------------------------------------
def request_join(
    db: Session,
    event_id: int,
    user_id: str,
    now: Optional[datetime] = None,
) -> EventAttendee:
    """Create a PENDING attendee record. Capacity is decided on approval."""
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFound("Event not found")
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFound("User not found")
    if user.deleted_at is not None:
        raise InvalidState("Accounts scheduled for deletion cannot join events")
    if event.status in CLOSED_STATUSES or event.status == EventStatus.draft:
        raise InvalidState(f"Event is {event.status.value} and does not accept join requests")
    if find_by_event_and_user(db, event_id, user_id):
        raise Conflict("User already has a join request for this event")

    attendee = EventAttendee(
        event_id=event_id,
        user_id=user_id,
        status=AttendeeStatus.pending,
        payment_amount=payment_ledger.to_amount(event.cost_per_person),
        amount_paid=payment_ledger.ZERO,
        payment_status=PaymentStatus.unpaid,
        joined_at=now or utcnow(),
    )
    db.add(attendee)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent request for the same pair.
        db.rollback()
        raise Conflict("User already has a join request for this event")
    db.refresh(attendee)
    logger.info("User %s requested to join event %s (attendee %s)", user_id, event_id, attendee.id)
    return attendee


def record_payment(db: Session, attendee_id: int, amount: Any) -> EventAttendee:
    """Accumulate a payment; serialized per attendee."""
    amount = payment_ledger.to_amount(amount)
    with attendee_locks.hold(attendee_id):
        attendee = get_attendee(db, attendee_id, for_update=True)
        apply_payment(attendee, amount)
        db.commit()
        db.refresh(attendee)
    logger.info(
        "Recorded payment of %s for attendee %s (paid %s of %s, %s)",
        amount, attendee_id, attendee.amount_paid, attendee.payment_amount, attendee.payment_status.value,
    )
    return attendee


def set_payment_amount(db: Session, attendee_id: int, amount: Any) -> EventAttendee:
    """Change what an attendee owes and re-derive their payment status."""
    amount = payment_ledger.to_amount(amount)
    if amount < payment_ledger.ZERO:
        raise ValidationError("Payment amount cannot be negative")
    with attendee_locks.hold(attendee_id):
        attendee = get_attendee(db, attendee_id, for_update=True)
        attendee.payment_amount = amount
        _recompute_payment_status(attendee)
        db.commit()
        db.refresh(attendee)
    logger.info("Set payment amount for attendee %s to %s", attendee_id, amount)
    return attendee

"""Attendee API routes — join requests, organizer decisions and payments."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from partake.database import get_db
from partake.models.attendee import EventAttendee
from partake.schemas.attendee import (
    ApprovalOut, AttendeeOut, JoinRequest, PaymentAmountRequest, PaymentRequest, PendingCountOut, RemovalOut,
)
from partake.services import attendance_service, capacity_service

logger = logging.getLogger(__name__)
router = APIRouter()


def attendee_out(attendee: EventAttendee) -> AttendeeOut:
    out = AttendeeOut.model_validate(attendee)
    return out.model_copy(update={"remaining_payment": attendance_service.remaining_payment(attendee)})


@router.post("/join", response_model=AttendeeOut, status_code=status.HTTP_201_CREATED)
def request_join(payload: JoinRequest, db: Session = Depends(get_db)):
    """Submit a join request; the organizer decides later."""
    attendee = attendance_service.request_join(db, payload.event_id, payload.user_id)
    return attendee_out(attendee)


@router.post("/{event_id}/{attendee_id}/approve", response_model=ApprovalOut)
def approve(event_id: int, attendee_id: int, db: Session = Depends(get_db)):
    """Approve if a seat is free; otherwise the attendee goes on the waitlist."""
    outcome = capacity_service.approve_with_capacity(db, event_id, attendee_id)
    message = "Event is full; added to waitlist" if outcome.capacity_full else "Approved"
    return ApprovalOut(attendee=attendee_out(outcome.attendee), capacity_full=outcome.capacity_full, message=message)


@router.post("/{event_id}/{attendee_id}/decline", response_model=AttendeeOut)
def decline(event_id: int, attendee_id: int, db: Session = Depends(get_db)):
    return attendee_out(capacity_service.decline_request(db, event_id, attendee_id))


@router.post("/{event_id}/{attendee_id}/waitlist", response_model=AttendeeOut)
def waitlist(event_id: int, attendee_id: int, db: Session = Depends(get_db)):
    return attendee_out(capacity_service.waitlist_request(db, event_id, attendee_id))


@router.post("/{event_id}/{attendee_id}/remove", response_model=RemovalOut)
def remove(event_id: int, attendee_id: int, db: Session = Depends(get_db)):
    """Remove an approved attendee; the head of the waitlist takes the seat."""
    outcome = capacity_service.remove_with_promotion(db, event_id, attendee_id)
    promoted = attendee_out(outcome.promoted) if outcome.promoted is not None else None
    return RemovalOut(removed=attendee_out(outcome.removed), promoted=promoted)


@router.post("/{attendee_id}/payments", response_model=AttendeeOut)
def record_payment(attendee_id: int, payload: PaymentRequest, db: Session = Depends(get_db)):
    return attendee_out(attendance_service.record_payment(db, attendee_id, payload.amount))


@router.put("/{attendee_id}/payment-amount", response_model=AttendeeOut)
def set_payment_amount(attendee_id: int, payload: PaymentAmountRequest, db: Session = Depends(get_db)):
    return attendee_out(attendance_service.set_payment_amount(db, attendee_id, payload.payment_amount))


@router.get("/users/{user_id}/active", response_model=list[AttendeeOut])
def active_participations(user_id: str, db: Session = Depends(get_db)):
    """Events the user is currently approved for."""
    return [attendee_out(a) for a in attendance_service.list_active_participations(db, user_id)]


@router.get("/users/{user_id}/pending", response_model=list[AttendeeOut])
def pending_requests_by_user(user_id: str, db: Session = Depends(get_db)):
    """The user's own undecided join requests, newest first."""
    return [attendee_out(a) for a in attendance_service.find_pending_requests_by_user(db, user_id)]


@router.get("/organizers/{organizer_id}/pending", response_model=list[AttendeeOut])
def pending_requests_for_organizer(organizer_id: str, db: Session = Depends(get_db)):
    """Requests awaiting the organizer's decision across all their events."""
    return [attendee_out(a) for a in attendance_service.find_pending_requests_for_organizer(db, organizer_id)]


@router.get("/organizers/{organizer_id}/pending/count", response_model=PendingCountOut)
def pending_request_count(organizer_id: str, db: Session = Depends(get_db)):
    count = attendance_service.count_pending_requests_for_organizer(db, organizer_id)
    return PendingCountOut(organizer_id=organizer_id, pending_requests=count)

"""Account deletion lifecycle.

    ACTIVE <-> DEACTIVATED                 (reversible)
    ACTIVE | DEACTIVATED -> SCHEDULED_FOR_DELETION   (irreversible)

Requesting deletion cancels the user's organized events, marks their
approved attendee records as belonging to a deleted account and stamps
`deleted_at`, all in one transaction. Once the grace period has elapsed
`purge_expired` erases the user and everything they own. This module has
no notion of when the purge runs; see partake.tasks.
"""
import logging
import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from partake.clock import utcnow
from partake.config import settings
from partake.exceptions import InvalidState, NotFound, ValidationError
from partake.models.attendee import AttendeeStatus, EventAttendee
from partake.models.contribution import ContributionItem
from partake.models.event import Event, EventStatus
from partake.models.user import User
from partake.services import attendance_service, capacity_service, contribution_service

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE MY ACCOUNT"
ORGANIZER_DELETED_REASON = "Event cancelled due to organizer account deletion"


@dataclass
class PurgeResult:
    purged: int = 0
    failures: dict[str, str] = field(default_factory=dict)
    stopped_early: bool = False


def grace_period_days() -> int:
    return settings.GRACE_PERIOD_DAYS


def _get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def deactivate(db: Session, user_id: str) -> User:
    user = _get_user(db, user_id)
    user.enabled = False
    db.commit()
    db.refresh(user)
    logger.info("User %s account deactivated", user_id)
    return user


def reactivate(db: Session, user_id: str) -> User:
    user = _get_user(db, user_id)
    if user.deleted_at is not None:
        raise InvalidState("Account is scheduled for deletion and cannot be reactivated")
    user.enabled = True
    db.commit()
    db.refresh(user)
    logger.info("User %s account reactivated", user_id)
    return user


def is_deactivated(db: Session, user_id: str) -> bool:
    user = db.query(User).filter(User.user_id == user_id).first()
    return user is not None and not user.enabled


def request_deletion(
    db: Session,
    user_id: str,
    confirmation: Optional[str],
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> User:
    """Schedule a user for deletion and apply the cascade atomically."""
    if confirmation != DELETE_CONFIRMATION:
        raise ValidationError(
            f"Invalid deletion confirmation. Please type '{DELETE_CONFIRMATION}' to confirm."
        )
    user = _get_user(db, user_id)
    if user.deleted_at is not None:
        raise InvalidState("Account is already scheduled for deletion")
    now = now or utcnow()
    logger.warning("User %s requested account deletion. Reason: %s", user_id, reason)

    try:
        organized = db.query(Event).filter(Event.organizer_id == user_id).all()
        for event in organized:
            if event.status in (EventStatus.cancelled, EventStatus.archived):
                continue
            event.status = EventStatus.cancelled
            event.cancellation_reason = ORGANIZER_DELETED_REASON
            event.cancelled_at = now
            logger.info("Cancelled event %s due to organizer deletion", event.event_id)

        for attendee in attendance_service.find_by_user_id(db, user_id):
            if attendance_service.is_active_participant(attendee):
                attendance_service.mark_account_deleted(attendee)
                contribution_service.release_claims(db, attendee.event_id, user_id)
            elif attendee.status in (AttendeeStatus.pending, AttendeeStatus.waitlist):
                attendance_service.decline(attendee)

        user.deleted_at = now
        user.enabled = False
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    logger.info("User %s account scheduled for deletion after %d days", user_id, grace_period_days())
    return user


def _purge_user(db: Session, user: User, now: datetime) -> None:
    """Erase one user with their attendee records and organized events, then commit.

    Seats the user held in other organizers' events are released under those
    events' critical sections so the waitlist is promoted and ACTIVE/FULL
    stays in step with the approved count.
    """
    event_ids = [
        row.event_id for row in db.query(Event.event_id).filter(Event.organizer_id == user.user_id).all()
    ]
    seat_event_ids = sorted({
        a.event_id
        for a in attendance_service.find_by_user_id(db, user.user_id)
        if attendance_service.is_active_participant(a) and a.event_id not in event_ids
    })

    with ExitStack() as stack:
        # Ascending event ids keep lock order consistent between concurrent sweeps.
        seat_events = [stack.enter_context(capacity_service.event_section(db, eid)) for eid in seat_event_ids]

        if event_ids:
            db.query(ContributionItem).filter(ContributionItem.event_id.in_(event_ids)).delete(
                synchronize_session=False
            )
            db.query(EventAttendee).filter(EventAttendee.event_id.in_(event_ids)).delete(
                synchronize_session=False
            )
        db.query(ContributionItem).filter(ContributionItem.assigned_to == user.user_id).update(
            {ContributionItem.assigned_to: None}, synchronize_session=False
        )
        db.query(EventAttendee).filter(EventAttendee.user_id == user.user_id).delete(synchronize_session=False)
        if event_ids:
            db.query(Event).filter(Event.event_id.in_(event_ids)).delete(synchronize_session=False)
        db.query(User).filter(User.user_id == user.user_id).delete(synchronize_session=False)
        db.flush()

        for event in seat_events:
            promoted = capacity_service.refill_seat(db, event, now)
            if promoted is not None:
                logger.info("Seat of purged account %s in event %s went to attendee %s",
                            user.user_id, event.event_id, promoted.id)
        db.commit()


def purge_expired(
    db: Session,
    now: Optional[datetime] = None,
    grace_days: Optional[int] = None,
    budget_seconds: Optional[float] = None,
) -> PurgeResult:
    """Permanently erase users whose grace period has elapsed.

    Each user is purged in its own transaction; a failure is logged and
    recorded, and the sweep moves on. Once `budget_seconds` is spent no
    further users are started. Users already purged (by an earlier or
    concurrent sweep) are simply not found, which makes reruns no-ops.
    """
    now = now or utcnow()
    grace_days = grace_period_days() if grace_days is None else grace_days
    cutoff = now - timedelta(days=grace_days)
    result = PurgeResult()

    candidate_ids = [
        row.user_id
        for row in db.query(User.user_id).filter(User.deleted_at.isnot(None), User.deleted_at <= cutoff).all()
    ]
    logger.info("Purging %d accounts marked for deletion before %s", len(candidate_ids), cutoff.isoformat())

    started = time.monotonic()
    for index, user_id in enumerate(candidate_ids):
        if budget_seconds is not None and time.monotonic() - started > budget_seconds:
            result.stopped_early = True
            logger.warning("Purge budget of %ss spent; %d accounts left for the next run",
                           budget_seconds, len(candidate_ids) - index)
            break
        try:
            user = (
                db.query(User)
                .filter(User.user_id == user_id, User.deleted_at.isnot(None))
                .with_for_update()
                .first()
            )
            if user is None:
                db.rollback()
                continue
            _purge_user(db, user, now)
            result.purged += 1
            logger.info("Purged account %s", user_id)
        except Exception as exc:
            db.rollback()
            result.failures[user_id] = str(exc)
            logger.exception("Failed to purge account %s", user_id)
    return result

"""Contribution items — what an event needs and who is bringing it.

    AVAILABLE -> CLAIMED      (an approved attendee takes it)
    CLAIMED   -> AVAILABLE    (the claimer lets it go)
    CLAIMED   -> CONFIRMED    (the organizer accepts the claim)
    CONFIRMED -> completed    (the organizer ticks it off)

The organizer manages the list; only approved attendees may claim. Claims
on one item are serialized so two attendees cannot both win it.
"""
import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from partake.exceptions import Conflict, Forbidden, InvalidState, NotFound, ValidationError
from partake.locks import contribution_locks
from partake.models.contribution import ContributionItem, ContributionStatus, ContributionType, Priority
from partake.models.event import CLOSED_STATUSES, Event, EventStatus
from partake.services import attendance_service, payment_ledger

logger = logging.getLogger(__name__)

_HELD = (ContributionStatus.claimed, ContributionStatus.confirmed)

# MUST_HAVE sorts ahead of NICE_TO_HAVE regardless of how the enum is stored.
_PRIORITY_ORDER = case((ContributionItem.priority == Priority.must_have, 0), else_=1)


def _get_event(db: Session, event_id: int) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFound("Event not found")
    return event


def _require_organizer(event: Event, actor_user_id: str) -> None:
    if event.organizer_id != actor_user_id:
        raise Forbidden("Only the organizer may manage contribution items")


def _require_open(event: Event) -> None:
    if event.status in CLOSED_STATUSES:
        raise InvalidState(f"Event is {event.status.value}; contributions are frozen")


def _enum_value(enum_cls, value, field: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}")


def build_item(
    event: Event,
    name: str,
    item_type: Any,
    priority: Any,
    category: Optional[str] = None,
    quantity: int = 1,
    time_commitment: Optional[int] = None,
    estimated_cost: Any = None,
    notes: Optional[str] = None,
) -> ContributionItem:
    """Validate and construct an unsaved item for `event`."""
    name = (name or "").strip()
    if not 2 <= len(name) <= 100:
        raise ValidationError("Name must be between 2 and 100 characters")
    if category is not None and len(category) > 50:
        raise ValidationError("Category cannot exceed 50 characters")
    if quantity is None or quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    if time_commitment is not None and time_commitment < 0:
        raise ValidationError("Time commitment cannot be negative")
    cost = None
    if estimated_cost is not None:
        cost = payment_ledger.to_amount(estimated_cost)
        if cost < payment_ledger.ZERO:
            raise ValidationError("Estimated cost cannot be negative")
    if notes is not None and len(notes) > 500:
        raise ValidationError("Notes cannot exceed 500 characters")

    return ContributionItem(
        event_id=event.event_id,
        name=name,
        category=category,
        type=_enum_value(ContributionType, item_type, "contribution type"),
        quantity=quantity,
        time_commitment=time_commitment,
        estimated_cost=cost,
        priority=_enum_value(Priority, priority, "priority"),
        status=ContributionStatus.available,
        completed=False,
        notes=notes,
    )


def add_item(db: Session, event_id: int, actor_user_id: str, **fields) -> ContributionItem:
    event = _get_event(db, event_id)
    _require_organizer(event, actor_user_id)
    _require_open(event)
    item = build_item(event, **fields)
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Added contribution item %s ('%s') to event %s", item.id, item.name, event_id)
    return item


def get_item(db: Session, item_id: int, for_update: bool = False) -> ContributionItem:
    query = db.query(ContributionItem).filter(ContributionItem.id == item_id)
    if for_update:
        query = query.with_for_update()
    item = query.first()
    if not item:
        raise NotFound("Contribution item not found")
    return item


def claim_item(db: Session, item_id: int, user_id: str) -> ContributionItem:
    """An approved attendee takes responsibility for an available item."""
    with contribution_locks.hold(item_id):
        try:
            item = get_item(db, item_id, for_update=True)
            _require_open(_get_event(db, item.event_id))
            seat = attendance_service.find_by_event_and_user(db, item.event_id, user_id)
            if seat is None or not attendance_service.is_active_participant(seat):
                raise Forbidden("Only approved attendees can claim contribution items")
            if item.status != ContributionStatus.available:
                raise Conflict("Contribution item has already been claimed")
            item.status = ContributionStatus.claimed
            item.assigned_to = user_id
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(item)
    logger.info("User %s claimed contribution item %s", user_id, item_id)
    return item


def release_item(db: Session, item_id: int, user_id: str) -> ContributionItem:
    """The claimer hands an unconfirmed item back to the pool."""
    with contribution_locks.hold(item_id):
        try:
            item = get_item(db, item_id, for_update=True)
            if item.assigned_to != user_id:
                raise Forbidden("Only the claimer can release this item")
            if item.status != ContributionStatus.claimed:
                raise InvalidState(f"Cannot release an item that is {item.status.value}")
            item.status = ContributionStatus.available
            item.assigned_to = None
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(item)
    logger.info("User %s released contribution item %s", user_id, item_id)
    return item


def confirm_item(db: Session, item_id: int, actor_user_id: str) -> ContributionItem:
    with contribution_locks.hold(item_id):
        try:
            item = get_item(db, item_id, for_update=True)
            _require_organizer(_get_event(db, item.event_id), actor_user_id)
            if item.status != ContributionStatus.claimed:
                raise InvalidState(f"Only claimed items can be confirmed (item is {item.status.value})")
            item.status = ContributionStatus.confirmed
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(item)
    logger.info("Confirmed contribution item %s", item_id)
    return item


def mark_completed(db: Session, item_id: int, actor_user_id: str) -> ContributionItem:
    with contribution_locks.hold(item_id):
        try:
            item = get_item(db, item_id, for_update=True)
            _require_organizer(_get_event(db, item.event_id), actor_user_id)
            if item.status != ContributionStatus.confirmed:
                raise InvalidState("Only confirmed items can be marked completed")
            item.completed = True
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(item)
    logger.info("Contribution item %s completed", item_id)
    return item


def release_claims(db: Session, event_id: int, user_id: str) -> int:
    """Return a user's unfinished items in one event to the pool. Does not commit."""
    held = (
        db.query(ContributionItem)
        .filter(
            ContributionItem.event_id == event_id,
            ContributionItem.assigned_to == user_id,
            ContributionItem.status.in_(_HELD),
            ContributionItem.completed.is_(False),
        )
        .all()
    )
    for item in held:
        item.status = ContributionStatus.available
        item.assigned_to = None
    if held:
        logger.info("Released %d contribution items of user %s in event %s", len(held), user_id, event_id)
    return len(held)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def list_items(db: Session, event_id: int) -> list[ContributionItem]:
    _get_event(db, event_id)
    return (
        db.query(ContributionItem)
        .filter(ContributionItem.event_id == event_id)
        .order_by(_PRIORITY_ORDER, ContributionItem.created_at.asc(), ContributionItem.id.asc())
        .all()
    )


def available_items(db: Session, event_id: int) -> list[ContributionItem]:
    """Unclaimed items, must-haves first, then oldest first."""
    _get_event(db, event_id)
    return (
        db.query(ContributionItem)
        .filter(ContributionItem.event_id == event_id, ContributionItem.status == ContributionStatus.available)
        .order_by(_PRIORITY_ORDER, ContributionItem.created_at.asc(), ContributionItem.id.asc())
        .all()
    )


def _unclaimed_must_have_query(db: Session, event_id: int):
    return db.query(ContributionItem).filter(
        ContributionItem.event_id == event_id,
        ContributionItem.priority == Priority.must_have,
        ContributionItem.status == ContributionStatus.available,
    )


def unclaimed_must_have(db: Session, event_id: int) -> list[ContributionItem]:
    _get_event(db, event_id)
    return (
        _unclaimed_must_have_query(db, event_id)
        .order_by(ContributionItem.created_at.asc(), ContributionItem.id.asc())
        .all()
    )


def count_unclaimed_must_have(db: Session, event_id: int) -> int:
    return _unclaimed_must_have_query(db, event_id).count()


def contributions_for_user(db: Session, user_id: str) -> list[ContributionItem]:
    """Items a user currently holds in events that are still live."""
    return (
        db.query(ContributionItem)
        .join(Event, Event.event_id == ContributionItem.event_id)
        .filter(
            ContributionItem.assigned_to == user_id,
            ContributionItem.status.in_(_HELD),
            Event.status.in_([EventStatus.active, EventStatus.full]),
        )
        .order_by(Event.event_id.asc(), ContributionItem.id.asc())
        .all()
    )


def contribution_summary(db: Session, event_id: int) -> dict[str, Any]:
    _get_event(db, event_id)
    items = db.query(ContributionItem).filter(ContributionItem.event_id == event_id).all()

    def _cost(rows) -> Decimal:
        return sum(
            (payment_ledger.to_amount(i.estimated_cost) for i in rows if i.estimated_cost is not None),
            payment_ledger.ZERO,
        )

    held = [i for i in items if i.status in _HELD]
    return {
        "event_id": event_id,
        "total_items": len(items),
        "available": sum(1 for i in items if i.status == ContributionStatus.available),
        "claimed": sum(1 for i in items if i.status == ContributionStatus.claimed),
        "confirmed": sum(1 for i in items if i.status == ContributionStatus.confirmed),
        "completed": sum(1 for i in items if i.completed),
        "unclaimed_must_have": count_unclaimed_must_have(db, event_id),
        "estimated_cost_total": _cost(items),
        "claimed_cost_total": _cost(held),
    }


"""Event ORM model."""
import enum
from decimal import Decimal
from sqlalchemy import Column, String, DateTime, Integer, Numeric, ForeignKey, Index, Enum as SAEnum
from sqlalchemy.sql import func
from partake.database import Base


class EventStatus(str, enum.Enum):
    draft = "DRAFT"
    active = "ACTIVE"
    full = "FULL"
    past = "PAST"
    cancelled = "CANCELLED"
    archived = "ARCHIVED"


class EventVisibility(str, enum.Enum):
    public = "PUBLIC"     # discoverable in the public listing
    private = "PRIVATE"   # reachable by direct id only


# Events in these states accept no new join requests.
CLOSED_STATUSES = (EventStatus.past, EventStatus.cancelled, EventStatus.archived)


class Event(Base):
    __tablename__ = "events"

    # Integer identity doubles as the keyset pagination key (creation order).
    event_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    organizer_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    max_attendees = Column(Integer, nullable=False)
    cost_per_person = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    status = Column(SAEnum(EventStatus), nullable=False, default=EventStatus.draft)
    visibility = Column(SAEnum(EventVisibility), nullable=False, default=EventVisibility.public)
    cancellation_reason = Column(String(500), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_events_organizer", "organizer_id"),
        Index("idx_events_status", "status"),
        Index("idx_events_visibility", "visibility"),
    )

"""EventAttendee ORM model — one user's participation in one event."""
import enum
from decimal import Decimal
from sqlalchemy import (
    Column, Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String,
    UniqueConstraint, Enum as SAEnum,
)
from partake.database import Base


class AttendeeStatus(str, enum.Enum):
    pending = "PENDING"
    approved = "APPROVED"
    waitlist = "WAITLIST"
    declined = "DECLINED"
    removed = "REMOVED"


class PaymentStatus(str, enum.Enum):
    unpaid = "UNPAID"
    partial = "PARTIAL"
    paid = "PAID"


class EventAttendee(Base):
    __tablename__ = "event_attendees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.event_id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    status = Column(SAEnum(AttendeeStatus), nullable=False, default=AttendeeStatus.pending)
    payment_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    amount_paid = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    payment_status = Column(SAEnum(PaymentStatus), nullable=False, default=PaymentStatus.unpaid)
    joined_at = Column(DateTime(timezone=True), nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String(500), nullable=True)
    account_deleted = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uk_event_attendee_event_user"),
        Index("idx_event_attendees_event", "event_id"),
        Index("idx_event_attendees_user", "user_id"),
        Index("idx_event_attendees_status", "status"),
        Index("idx_event_attendees_payment", "payment_status"),
    )

"""ContributionItem ORM model — something an event needs brought or done."""
import enum
from sqlalchemy import Column, Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Enum as SAEnum
from sqlalchemy.sql import func
from partake.database import Base


class ContributionType(str, enum.Enum):
    material = "MATERIAL"   # food, drinks, equipment
    service = "SERVICE"     # photography, transport, setup help


class Priority(str, enum.Enum):
    must_have = "MUST_HAVE"
    nice_to_have = "NICE_TO_HAVE"


class ContributionStatus(str, enum.Enum):
    available = "AVAILABLE"
    claimed = "CLAIMED"
    confirmed = "CONFIRMED"


class ContributionItem(Base):
    __tablename__ = "contribution_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.event_id"), nullable=False)
    name = Column(String(100), nullable=False)
    category = Column(String(50), nullable=True)
    type = Column(SAEnum(ContributionType), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    time_commitment = Column(Integer, nullable=True)  # minutes
    estimated_cost = Column(Numeric(12, 2), nullable=True)
    priority = Column(SAEnum(Priority), nullable=False)
    status = Column(SAEnum(ContributionStatus), nullable=False, default=ContributionStatus.available)
    assigned_to = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_contribution_items_event", "event_id"),
        Index("idx_contribution_items_assigned", "assigned_to"),
        Index("idx_contribution_items_status", "status"),
    )

"""User ORM model — account fields plus the deletion lifecycle markers."""
import enum
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Index
from sqlalchemy.sql import func
from partake.database import Base


class AccountDeletionStatus(str, enum.Enum):
    active = "ACTIVE"
    deactivated = "DEACTIVATED"
    scheduled_for_deletion = "SCHEDULED_FOR_DELETION"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    enabled = Column(Boolean, nullable=False, default=True)
    # null = not scheduled; set = deletion requested at this instant
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_users_deleted_at", "deleted_at"),)

    @property
    def deletion_status(self) -> AccountDeletionStatus:
        if self.deleted_at is not None:
            return AccountDeletionStatus.scheduled_for_deletion
        if not self.enabled:
            return AccountDeletionStatus.deactivated
        return AccountDeletionStatus.active

"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates users, events and event_attendees.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EVENT_STATUSES = ("draft", "active", "full", "past", "cancelled", "archived")
ATTENDEE_STATUSES = ("pending", "approved", "waitlist", "declined", "removed")
PAYMENT_STATUSES = ("unpaid", "partial", "paid")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_users_deleted_at", "users", ["deleted_at"])

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("organizer_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("max_attendees", sa.Integer, nullable=False),
        sa.Column("cost_per_person", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.Enum(*EVENT_STATUSES, name="eventstatus"), nullable=False),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_events_organizer", "events", ["organizer_id"])
    op.create_index("idx_events_status", "events", ["status"])

    # --- event_attendees ---
    op.create_table(
        "event_attendees",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer, sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("status", sa.Enum(*ATTENDEE_STATUSES, name="attendeestatus"), nullable=False),
        sa.Column("payment_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("payment_status", sa.Enum(*PAYMENT_STATUSES, name="paymentstatus"), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("account_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("event_id", "user_id", name="uk_event_attendee_event_user"),
    )
    op.create_index("idx_event_attendees_event", "event_attendees", ["event_id"])
    op.create_index("idx_event_attendees_user", "event_attendees", ["user_id"])
    op.create_index("idx_event_attendees_status", "event_attendees", ["status"])
    op.create_index("idx_event_attendees_payment", "event_attendees", ["payment_status"])


def downgrade() -> None:
    op.drop_table("event_attendees")
    op.drop_table("events")
    op.drop_table("users")
    sa.Enum(name="paymentstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="attendeestatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="eventstatus").drop(op.get_bind(), checkfirst=True)

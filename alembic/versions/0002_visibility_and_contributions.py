"""visibility_and_contributions

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

Adds events.visibility and the contribution_items table.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

VISIBILITIES = ("public", "private")
CONTRIBUTION_TYPES = ("material", "service")
PRIORITIES = ("must_have", "nice_to_have")
CONTRIBUTION_STATUSES = ("available", "claimed", "confirmed")


def upgrade() -> None:
    visibility = sa.Enum(*VISIBILITIES, name="eventvisibility")
    visibility.create(op.get_bind(), checkfirst=True)
    op.add_column(
        "events",
        sa.Column("visibility", visibility, nullable=False, server_default="public"),
    )
    op.create_index("idx_events_visibility", "events", ["visibility"])

    # --- contribution_items ---
    op.create_table(
        "contribution_items",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer, sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("type", sa.Enum(*CONTRIBUTION_TYPES, name="contributiontype"), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("time_commitment", sa.Integer, nullable=True),
        sa.Column("estimated_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("priority", sa.Enum(*PRIORITIES, name="priority"), nullable=False),
        sa.Column("status", sa.Enum(*CONTRIBUTION_STATUSES, name="contributionstatus"), nullable=False),
        sa.Column("assigned_to", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_contribution_items_event", "contribution_items", ["event_id"])
    op.create_index("idx_contribution_items_assigned", "contribution_items", ["assigned_to"])
    op.create_index("idx_contribution_items_status", "contribution_items", ["status"])


def downgrade() -> None:
    op.drop_table("contribution_items")
    op.drop_index("idx_events_visibility", table_name="events")
    op.drop_column("events", "visibility")
    sa.Enum(name="contributionstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="priority").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="contributiontype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="eventvisibility").drop(op.get_bind(), checkfirst=True)

"""Access control schema - items, prerequisite edges, completions, audit log

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "items",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_items_kind", "items", ["kind"])

    # Insertion order of edges is seq order
    op.create_table(
        "prerequisite_edges",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("item_id", sa.String(64), sa.ForeignKey("items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("prerequisite_id", sa.String(64), sa.ForeignKey("items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("item_id", "prerequisite_id", name="uq_prerequisite_edges_pair"),
        sa.CheckConstraint("item_id <> prerequisite_id", name="ck_prerequisite_edges_no_self_loop"),
    )
    op.create_index("ix_prerequisite_edges_item", "prerequisite_edges", ["item_id", "seq"])
    op.create_index("ix_prerequisite_edges_prerequisite", "prerequisite_edges", ["prerequisite_id", "seq"])

    op.create_table(
        "completion_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("learner_id", sa.String(64), nullable=False),
        sa.Column("item_id", sa.String(64), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("learner_id", "item_id", name="uq_completion_records_learner_item"),
    )
    op.create_index("ix_completion_records_learner", "completion_records", ["learner_id"])

    op.create_table(
        "event_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_event_logs_event_type", "event_logs", ["event_type"])
    op.create_index("ix_event_logs_entity_id", "event_logs", ["entity_id"])
    op.create_index("ix_event_logs_actor_id", "event_logs", ["actor_id"])
    op.create_index("ix_event_logs_created_at", "event_logs", ["created_at"])
    op.create_index("ix_event_logs_entity", "event_logs", ["entity_type", "entity_id"])
    op.create_index("ix_event_logs_type_time", "event_logs", ["event_type", "created_at"])


def downgrade() -> None:
    op.drop_table("event_logs")
    op.drop_table("completion_records")
    op.drop_table("prerequisite_edges")
    op.drop_table("items")

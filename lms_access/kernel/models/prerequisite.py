"""
Prerequisite edges between learning items.

An edge (item_id -> prerequisite_id) means item_id requires completion of
prerequisite_id. The integer primary key doubles as insertion order.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from lms_access.kernel.models.base import ID_LENGTH, Base


class PrerequisiteEdge(Base):
    """Directed 'requires' edge. Unique per ordered pair, never a self-loop."""

    __tablename__ = "prerequisite_edges"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
    )
    prerequisite_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("item_id", "prerequisite_id", name="uq_prerequisite_edges_pair"),
        CheckConstraint("item_id <> prerequisite_id", name="ck_prerequisite_edges_no_self_loop"),
        Index("ix_prerequisite_edges_item", "item_id", "seq"),
        Index("ix_prerequisite_edges_prerequisite", "prerequisite_id", "seq"),
    )

    def __repr__(self) -> str:
        return f"<PrerequisiteEdge {self.item_id} -> {self.prerequisite_id}>"

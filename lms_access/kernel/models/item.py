"""
Learning items - the nodes of the prerequisite graph.
"""

from enum import Enum

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lms_access.kernel.models.base import ID_LENGTH, Base, TimestampMixin, generate_id


class ItemKind(str, Enum):
    """What kind of learning item a node is."""

    COURSE = "course"
    LESSON = "lesson"


class Item(Base, TimestampMixin):
    """
    A course or lesson.

    Identity is immutable; the title may be changed by course authoring.
    Deleting an item removes every prerequisite edge that references it.
    """

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        primary_key=True,
        default=generate_id,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    kind: Mapped[ItemKind] = mapped_column(String(20), nullable=False)

    __table_args__ = (
        Index("ix_items_kind", "kind"),
    )

    def __repr__(self) -> str:
        return f"<Item {self.kind}:{self.id} {self.title!r}>"

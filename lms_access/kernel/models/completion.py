"""
Completion records - which learner finished which item.

Owned by the progress side of the LMS. The access evaluator only reads them.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from lms_access.kernel.models.base import ID_LENGTH, Base


class CompletionRecord(Base):
    """A learner completed an item at completed_at."""

    __tablename__ = "completion_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    learner_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    # No FK: completions may reference items this service never saw.
    item_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("learner_id", "item_id", name="uq_completion_records_learner_item"),
        Index("ix_completion_records_learner", "learner_id"),
    )

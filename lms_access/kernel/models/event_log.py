"""
Immutable event log for audit trail.

All state mutations are logged here BEFORE commit.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, String, func, Index, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lms_access.kernel.models.base import ID_LENGTH, Base


class EventType(str, Enum):
    """All event types for the audit log."""
    
    # Item events
    ITEM_CREATED = "item.created"
    ITEM_UPDATED = "item.updated"
    ITEM_DELETED = "item.deleted"
    
    # Prerequisite graph events
    PREREQUISITE_ADDED = "prerequisite.added"
    PREREQUISITE_REMOVED = "prerequisite.removed"
    PREREQUISITE_REJECTED = "prerequisite.rejected"
    
    # Completion events
    COMPLETION_RECORDED = "completion.recorded"
    COMPLETION_REVOKED = "completion.revoked"


class EventLog(Base):
    """
    Immutable audit event log.
    
    This table is append-only - no updates or deletes allowed.
    """
    
    __tablename__ = "event_logs"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    
    event_type: Mapped[EventType] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    
    # Entity reference
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        nullable=False,
        index=True,
    )
    
    # Actor (instructor, learner or None for system events)
    actor_id: Mapped[Optional[str]] = mapped_column(
        String(ID_LENGTH),
        nullable=True,
        index=True,
    )
    
    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    
    __table_args__ = (
        Index("ix_event_logs_entity", "entity_type", "entity_id"),
        Index("ix_event_logs_type_time", "event_type", "created_at"),
    )
    
    def __repr__(self) -> str:
        return f"<EventLog {self.event_type} {self.entity_type}:{self.entity_id}>"

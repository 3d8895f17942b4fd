"""
Event Store service for append-only audit logging.

All state mutations MUST be logged here BEFORE commit.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from lms_access.kernel.models.event_log import EventLog, EventType


class EventStore:
    """
    Service for managing the immutable event log.
    
    Usage:
        event_store = EventStore(session)
        await event_store.log(
            event_type=EventType.PREREQUISITE_ADDED,
            entity_type="item",
            entity_id=item_id,
            payload={"prerequisite_id": prerequisite_id},
        )
    """
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def log(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: str,
        actor_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> EventLog:
        """
        Log an event to the immutable audit log.
        
        This MUST be called before committing any state change.
        
        Args:
            event_type: The type of event
            entity_type: The type of entity (item, learner, ...)
            entity_id: The ID of the entity
            actor_id: Who triggered the event (None for system events)
            payload: Additional event data
            
        Returns:
            The created EventLog record
        """
        if payload:
            payload = self._serialize_payload(payload)
        
        event = EventLog(
            event_type=event_type.value,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            payload=payload or {},
        )
        
        self.session.add(event)
        # Caller flushes/commits together with the mutation itself
        return event
    
    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: str,
        event_types: Optional[List[EventType]] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[EventLog]:
        """
        Get the event history for a specific entity, newest first.
        """
        query = select(EventLog).where(
            and_(
                EventLog.entity_type == entity_type,
                EventLog.entity_id == entity_id,
            )
        )
        
        if event_types:
            query = query.where(EventLog.event_type.in_([t.value for t in event_types]))
        
        query = query.order_by(desc(EventLog.created_at)).offset(offset).limit(limit)
        
        result = await self.session.execute(query)
        return list(result.scalars().all())
    
    async def count_events(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        event_type: Optional[EventType] = None,
        since: Optional[datetime] = None,
    ) -> int:
        """Count events matching the given criteria."""
        query = select(func.count(EventLog.id))
        
        if entity_type:
            query = query.where(EventLog.entity_type == entity_type)
        if entity_id:
            query = query.where(EventLog.entity_id == entity_id)
        if event_type:
            query = query.where(EventLog.event_type == event_type.value)
        if since:
            query = query.where(EventLog.created_at >= since)
        
        result = await self.session.execute(query)
        return result.scalar() or 0
    
    def _serialize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Convert payload values to JSON-serializable types."""
        result = {}
        for key, value in payload.items():
            if isinstance(value, uuid.UUID):
                result[key] = str(value)
            elif isinstance(value, datetime):
                result[key] = value.isoformat()
            elif isinstance(value, dict):
                result[key] = self._serialize_payload(value)
            elif isinstance(value, (list, tuple)):
                result[key] = [
                    self._serialize_payload(v) if isinstance(v, dict)
                    else str(v) if isinstance(v, uuid.UUID)
                    else v.isoformat() if isinstance(v, datetime)
                    else v
                    for v in value
                ]
            else:
                result[key] = value
        return result

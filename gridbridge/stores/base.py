"""Base interface for received-event stores."""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import BaseModel, Field

from ..events.models import Event, EventSchema
from ..events.parser import EventParser


class ReceivedEvent(BaseModel):
    """An event as it was delivered to the webhook, with receipt metadata."""
    id: str
    event_schema: EventSchema
    event_type: str
    session_id: str
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    envelope: dict[str, Any]

    @classmethod
    def from_event(cls, event: Event, session_id: str) -> "ReceivedEvent":
        return cls(
            id=event.id,
            event_schema=event.event_schema,
            event_type=event.event_type,
            session_id=session_id,
            envelope=event.to_dict(),
        )

    def to_event(self) -> Event:
        """Re-parse the stored envelope."""
        return EventParser.parse_object(self.envelope)


class EventStore(ABC):
    """Abstract interface for received-event store implementations."""

    @abstractmethod
    async def append(self, event: Event, session_id: str) -> ReceivedEvent:
        """
        Store a received event.

        Args:
            event: The parsed event
            session_id: Session id of the delivery the event arrived in

        Returns:
            The stored record
        """
        pass

    @abstractmethod
    async def list_recent(self, limit: int = 50) -> Iterable[ReceivedEvent]:
        """
        Retrieve recently received events, newest first.

        Args:
            limit: Maximum number of events to return
        """
        pass

    @abstractmethod
    async def get(self, event_id: str) -> ReceivedEvent | None:
        """Retrieve the most recent event received with ``event_id``."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the store is healthy and accessible.

        Returns:
            True if the store is healthy, False otherwise
        """
        pass

    async def close(self):
        return None

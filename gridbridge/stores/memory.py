"""In-memory received-event store."""
from collections import deque
from typing import Iterable

import structlog

from ..events.models import Event
from .base import EventStore, ReceivedEvent

log = structlog.get_logger()


class InMemoryEventStore(EventStore):
    """Keeps the last ``max_events`` received events in memory."""

    def __init__(self, max_events: int = 10000):
        if max_events <= 0:
            raise ValueError("Requires a maximum event count greater than zero")
        self._buffer: deque[ReceivedEvent] = deque(maxlen=max_events)

    async def append(self, event: Event, session_id: str) -> ReceivedEvent:
        received = ReceivedEvent.from_event(event, session_id)
        self._buffer.append(received)
        log.info(
            "event.stored",
            id=received.id,
            type=received.event_type,
            schema=received.event_schema.value,
            store="memory",
        )
        return received

    async def list_recent(self, limit: int = 50) -> Iterable[ReceivedEvent]:
        return list(reversed(self._buffer))[:limit]

    async def get(self, event_id: str) -> ReceivedEvent | None:
        for received in reversed(self._buffer):
            if received.id == event_id:
                return received
        return None

    async def health_check(self) -> bool:
        """In-memory store is always healthy."""
        return True

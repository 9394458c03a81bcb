"""Receiving service: parses webhook deliveries and stores their events."""
from collections import Counter
from typing import Iterable

import structlog

from ..config import Settings
from ..events.models import EventBatch, Event
from ..events.parser import EventParser, RawPayload
from ..metrics import Metrics
from ..stores.base import EventStore, ReceivedEvent
from ..stores.memory import InMemoryEventStore
from ..stores.redis_stream import RedisStreamEventStore

log = structlog.get_logger()


class EventReceiver:
    """
    Parses Event Grid deliveries and hands their events to a store.

    Args:
        store: Store the received events are appended to
        metrics: Prometheus metrics to count received events on
    """

    def __init__(self, store: EventStore, metrics: Metrics | None = None):
        self._store = store
        self._metrics = metrics

    @property
    def store(self) -> EventStore:
        return self._store

    async def receive(self, raw: RawPayload, session_id: str | None = None) -> EventBatch[Event]:
        """
        Parse a delivery and store every event in it, in order.

        Raises:
            EventParsingError: If the delivery cannot be parsed
            ValueError: If the delivery or session id is blank
        """
        batch = EventParser.parse(raw, session_id=session_id)
        for event in batch.events:
            await self._store.append(event, batch.session_id)

        if self._metrics is not None:
            counts = Counter((e.event_schema.value, e.event_type) for e in batch.events)
            for (schema, event_type), count in counts.items():
                self._metrics.record_events_received(schema, event_type, count)

        log.info(
            "events.received",
            session_id=batch.session_id,
            count=len(batch.events),
            event_types=sorted({e.event_type for e in batch.events}),
        )
        return batch

    async def list_recent(self, limit: int = 50) -> Iterable[ReceivedEvent]:
        return await self._store.list_recent(limit)

    async def get(self, event_id: str) -> ReceivedEvent | None:
        return await self._store.get(event_id)

    async def health_check(self) -> bool:
        return await self._store.health_check()


def create_default_store(settings: Settings) -> EventStore:
    """
    Create the received-event store based on configuration.

    Returns:
        EventStore instance based on the STORE_ADAPTER setting
    """
    if settings.STORE_ADAPTER == "redis":
        if not settings.REDIS_URL:
            log.warning(
                "store.fallback",
                requested="redis",
                actual="memory",
                reason="REDIS_URL not configured"
            )
            return InMemoryEventStore()

        log.info("store.selected", type="redis")
        return RedisStreamEventStore(str(settings.REDIS_URL))

    log.info("store.selected", type="memory")
    return InMemoryEventStore()

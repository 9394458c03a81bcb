"""Redis Streams received-event store."""
from typing import Iterable

import orjson
import structlog
from redis import Redis
from redis.exceptions import RedisError

from ..events.models import Event
from .base import EventStore, ReceivedEvent

log = structlog.get_logger()


def _entry_score(entry_id: bytes | str) -> float:
    # Stream ids are "<ms>-<seq>"; ids within one millisecond tie
    if isinstance(entry_id, bytes):
        entry_id = entry_id.decode()
    return float(entry_id.partition("-")[0])


class RedisStreamEventStore(EventStore):
    """Redis Streams implementation of the received-event store.

    Events are appended to a capped Redis stream; a hash maps event ids to
    their stream entry so single events can be looked up. A sorted set ranks
    the indexed ids by arrival so the index is capped along with the stream.
    """

    def __init__(
        self,
        redis_url: str,
        stream_key: str = "gridbridge:events",
        max_events: int = 10000,
    ):
        """
        Initialize Redis stream store.

        Args:
            redis_url: Redis connection URL
            stream_key: Key of the stream holding received events
            max_events: Approximate cap on the stream length
        """
        if not redis_url:
            raise ValueError("Requires a Redis URL")
        self.redis_url = redis_url
        self.max_events = max_events
        self._client: Redis | None = None
        self._stream_key = stream_key
        self._index_key = f"{stream_key}:index"
        self._order_key = f"{stream_key}:order"

    def _get_client(self) -> Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = Redis.from_url(
                self.redis_url,
                decode_responses=False,  # payloads are orjson bytes
                socket_connect_timeout=5,
                socket_timeout=5
            )
        return self._client

    async def append(self, event: Event, session_id: str) -> ReceivedEvent:
        """
        Append a received event to the Redis stream.

        Raises:
            RedisError: If unable to write to Redis
        """
        received = ReceivedEvent.from_event(event, session_id)

        try:
            client = self._get_client()
            entry_id = client.xadd(
                self._stream_key,
                {"data": orjson.dumps(received.model_dump(mode="json"))},
                id="*",
                maxlen=self.max_events,
            )
            client.hset(self._index_key, received.id, entry_id)
            client.zadd(self._order_key, {received.id: _entry_score(entry_id)})
            self._trim_index(client)

            log.info(
                "event.stored",
                id=received.id,
                type=received.event_type,
                schema=received.event_schema.value,
                store="redis_stream"
            )
            return received

        except RedisError as e:
            log.error("redis.append_failed", error=str(e), event_id=received.id)
            raise

    def _trim_index(self, client: Redis):
        """Drop index entries beyond the newest ``max_events`` ids."""
        overflow = client.zcard(self._order_key) - self.max_events
        if overflow <= 0:
            return
        evicted = client.zrange(self._order_key, 0, overflow - 1)
        client.zremrangebyrank(self._order_key, 0, overflow - 1)
        if evicted:
            client.hdel(self._index_key, *evicted)
        log.debug("redis.index_trimmed", evicted=len(evicted))

    async def list_recent(self, limit: int = 50) -> Iterable[ReceivedEvent]:
        """
        List recent events from the Redis stream, newest first.

        Raises:
            RedisError: If unable to read from Redis
        """
        try:
            entries = self._get_client().xrevrange(self._stream_key, count=limit)
        except RedisError as e:
            log.error("redis.list_failed", error=str(e))
            raise

        return [
            ReceivedEvent.model_validate(orjson.loads(entry_data[b"data"]))
            for _, entry_data in entries
            if b"data" in entry_data
        ]

    async def get(self, event_id: str) -> ReceivedEvent | None:
        """
        Look up a received event by id.

        Returns None when the id is unknown or its entry has been trimmed
        from the stream.
        """
        try:
            client = self._get_client()
            entry_id = client.hget(self._index_key, event_id)
            if entry_id is None:
                return None
            entries = client.xrange(self._stream_key, min=entry_id, max=entry_id, count=1)
            if not entries:
                client.hdel(self._index_key, event_id)
                client.zrem(self._order_key, event_id)
                return None
        except RedisError as e:
            log.error("redis.get_failed", error=str(e), event_id=event_id)
            raise

        _, entry_data = entries[0]
        return ReceivedEvent.model_validate(orjson.loads(entry_data[b"data"]))

    async def health_check(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if Redis is accessible, False otherwise
        """
        try:
            return bool(self._get_client().ping())
        except RedisError as e:
            log.warning("redis.health_check_failed", error=str(e))
            return False

    async def close(self):
        """Close Redis connection."""
        if self._client:
            self._client.close()
            self._client = None

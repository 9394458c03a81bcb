"""
Stores for events received on the webhook
"""

from .base import EventStore, ReceivedEvent
from .memory import InMemoryEventStore
from .redis_stream import RedisStreamEventStore

__all__ = ["EventStore", "ReceivedEvent", "InMemoryEventStore", "RedisStreamEventStore"]

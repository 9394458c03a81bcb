"""
Event Grid event parsing

Provides the uniform event model and the parsing/dispatch layer:
- Event Grid and CloudEvents envelopes
- Schema sniffing of single events and batches
- Typed projection of event data
"""

from .models import (
    CloudEvent,
    Event,
    EventBatch,
    EventGridEvent,
    EventSchema,
    RawEvent,
)
from .parser import EventParser, is_cloud_event
from .payload import project_payload

__all__ = [
    "CloudEvent",
    "Event",
    "EventBatch",
    "EventGridEvent",
    "EventSchema",
    "RawEvent",
    "EventParser",
    "is_cloud_event",
    "project_payload",
]

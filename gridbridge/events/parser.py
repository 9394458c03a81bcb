"""
Parsing of raw Event Grid deliveries.

A delivery is either a single JSON object or an array of them. Each object
is classified by the presence of a CloudEvents spec-version attribute and
decoded into the matching envelope.
"""
import uuid
from typing import Any, Callable, TypeVar

import orjson
import structlog
from pydantic import BaseModel, ValidationError

from ..errors import EventParsingError
from .models import CloudEvent, Event, EventBatch, EventGridEvent, EventSchema

log = structlog.get_logger()

T = TypeVar("T")
TModel = TypeVar("TModel", bound=BaseModel)

RawPayload = str | bytes | bytearray | memoryview

CLOUD_EVENTS_SPEC_VERSION = "specversion"
CLOUD_EVENTS_V01_SPEC_VERSION = "cloudEventsVersion"


def is_cloud_event(raw: dict[str, Any]) -> bool:
    """Whether a JSON object is a CloudEvents envelope (1.0 or 0.1)."""
    return CLOUD_EVENTS_SPEC_VERSION in raw or CLOUD_EVENTS_V01_SPEC_VERSION in raw


def _load_raw_input(raw: RawPayload) -> Any:
    if raw is None:
        raise ValueError("Cannot parse a 'None' raw JSON payload to an event")
    if isinstance(raw, str):
        if not raw.strip():
            raise ValueError("Cannot parse a blank raw JSON payload to an event")
    elif isinstance(raw, (bytes, bytearray, memoryview)):
        if len(raw) == 0:
            raise ValueError("Cannot parse an empty series of bytes to an event")
    else:
        raise TypeError(f"Cannot parse a raw JSON payload of type '{type(raw).__name__}' to an event")

    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise EventParsingError(f"Raw payload is not valid JSON: {exc}") from exc


def _resolve_session_id(session_id: str | None) -> str:
    if session_id is None:
        return str(uuid.uuid4())
    if not session_id.strip():
        raise ValueError("Cannot parse a raw JSON payload with a blank session ID")
    return session_id


def _decode_event_grid_event(raw: dict[str, Any]) -> EventGridEvent:
    try:
        return EventGridEvent.model_validate(raw)
    except ValidationError as exc:
        raise EventParsingError(f"Cannot decode {EventSchema.EVENT_GRID.value} event: {exc}") from exc


def _decode_cloud_event(raw: dict[str, Any]) -> CloudEvent:
    try:
        return CloudEvent.from_dict(raw)
    except ValidationError as exc:
        raise EventParsingError(f"Cannot decode {EventSchema.CLOUD_EVENT.value} event: {exc}") from exc


class EventParser:
    """
    Turns raw JSON payloads into event batches.

    Every ``parse*`` method accepts a ``str`` or UTF-8 ``bytes`` holding a
    single event object or an array of them, and an optional session id
    (a fresh UUID when omitted).

    Raises:
        ValueError: If the payload or session id is missing or blank
        EventParsingError: If the payload is not JSON, not an object or
            non-empty array of objects, or an object fails to decode
    """

    @staticmethod
    def parse_object(raw: dict[str, Any]) -> Event:
        """Classify and decode one already-loaded JSON object."""
        if not isinstance(raw, dict):
            raise EventParsingError(
                f"Cannot parse a JSON {type(raw).__name__} to an event, requires a JSON object"
            )
        if is_cloud_event(raw):
            return Event(cloud_event=_decode_cloud_event(raw))
        return Event(event_grid_event=_decode_event_grid_event(raw))

    @classmethod
    def parse(cls, raw: RawPayload, session_id: str | None = None) -> EventBatch[Event]:
        """Parse CloudEvents and/or Event Grid events into uniform events."""
        return cls._parse_one_or_many(raw, session_id, cls.parse_object)

    @classmethod
    def parse_event_grid_events(
        cls, raw: RawPayload, session_id: str | None = None
    ) -> EventBatch[EventGridEvent]:
        """Parse every object as an Event Grid schema event."""
        return cls._parse_one_or_many(raw, session_id, _decode_event_grid_event)

    @classmethod
    def parse_cloud_events(
        cls, raw: RawPayload, session_id: str | None = None
    ) -> EventBatch[CloudEvent]:
        """Parse every object as a CloudEvent."""
        return cls._parse_one_or_many(raw, session_id, _decode_cloud_event)

    @classmethod
    def parse_as(
        cls, raw: RawPayload, model: type[TModel], session_id: str | None = None
    ) -> EventBatch[TModel]:
        """Parse every object into a custom event schema model."""

        def decode(obj: dict[str, Any]) -> TModel:
            try:
                return model.model_validate(obj)
            except ValidationError as exc:
                raise EventParsingError(f"Cannot decode {model.__name__} event: {exc}") from exc

        return cls._parse_one_or_many(raw, session_id, decode)

    @staticmethod
    def _parse_one_or_many(
        raw: RawPayload,
        session_id: str | None,
        decode: Callable[[dict[str, Any]], T],
    ) -> EventBatch[T]:
        session_id = _resolve_session_id(session_id)
        loaded = _load_raw_input(raw)

        if isinstance(loaded, list):
            if not loaded:
                raise EventParsingError("Cannot parse an empty JSON array, requires at least one event")
            events = []
            for index, item in enumerate(loaded):
                if not isinstance(item, dict):
                    raise EventParsingError(
                        f"Cannot parse element {index} of the JSON array, requires a JSON object"
                    )
                events.append(decode(item))
        elif isinstance(loaded, dict):
            events = [decode(loaded)]
        else:
            raise EventParsingError(
                "Couldn't find a correct JSON structure (array or object) to parse the events from"
            )

        log.debug("events.parsed", session_id=session_id, count=len(events))
        return EventBatch(session_id=session_id, events=events)

"""Event Grid and CloudEvents envelopes plus the uniform Event wrapper."""
import base64
import binascii
import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Type, TypeVar

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .payload import project_payload

T = TypeVar("T")
TEvent = TypeVar("TEvent")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# .NET emits 7 fractional digits, datetime holds 6
_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


def _trim_fraction(value: Any) -> Any:
    if isinstance(value, str):
        return _EXCESS_FRACTION.sub(r"\1", value, count=1)
    return value


class EventSchema(str, Enum):
    """Envelope formats an Event Grid topic can deliver."""
    EVENT_GRID = "EventGrid"
    CLOUD_EVENT = "CloudEvent"


class EventGridEvent(BaseModel):
    """Azure Event Grid schema envelope."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    topic: str | None = None
    subject: str
    event_type: str = Field(..., alias="eventType", min_length=1)
    event_time: datetime = Field(..., alias="eventTime")
    data_version: str | None = Field(None, alias="dataVersion")
    metadata_version: str | None = Field(None, alias="metadataVersion")
    data: Any = None

    @field_validator("event_time", mode="before")
    @classmethod
    def _normalize_event_time(cls, value: Any) -> Any:
        return _trim_fraction(value)

    def get_payload(self, model: type[T]) -> T | None:
        """Project the event data onto ``model``."""
        return project_payload(self.data, model)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the Event Grid wire format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RawEvent(EventGridEvent):
    """
    An Event Grid event built from ad hoc JSON text for outbound publishing.

    The body must be valid JSON; it is stored decoded so it serializes as a
    JSON value rather than an escaped string.
    """
    subject: str = "/"
    event_time: datetime = Field(default_factory=_utcnow, alias="eventTime")
    data_version: str | None = Field("1.0", alias="dataVersion")
    metadata_version: str | None = Field("1", alias="metadataVersion")

    @field_validator("data", mode="before")
    @classmethod
    def _parse_body(cls, value: Any) -> Any:
        if not isinstance(value, (str, bytes, bytearray)):
            raise ValueError("The event body is not a valid JSON payload")
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError as exc:
            raise ValueError("The event body is not a valid JSON payload") from exc

    @classmethod
    def create(
        cls,
        event_id: str,
        event_type: str,
        event_body: str,
        event_subject: str = "/",
        data_version: str = "1.0",
        event_time: datetime | None = None,
    ) -> "RawEvent":
        return cls(
            id=event_id,
            event_type=event_type,
            data=event_body,
            subject=event_subject,
            data_version=data_version,
            event_time=event_time or _utcnow(),
        )


# CloudEvents 0.1 attribute names and their 1.0 counterparts
_V01_ATTRIBUTES = {
    "eventID": "id",
    "eventType": "type",
    "eventTime": "time",
    "source": "source",
    "contentType": "datacontenttype",
    "schemaURL": "dataschema",
    "data": "data",
}


class CloudEvent(BaseModel):
    """
    CloudEvents structured-mode JSON envelope.

    Attributes outside the core set are kept as extension attributes and
    are available through ``extensions``.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    specversion: str = "1.0"
    time: datetime | None = None
    subject: str | None = None
    datacontenttype: str | None = None
    dataschema: str | None = None
    data: Any = None
    data_base64: str | None = None

    @field_validator("time", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> Any:
        return _trim_fraction(value)

    @model_validator(mode="before")
    @classmethod
    def _decode_binary_data(cls, values: Any) -> Any:
        if not isinstance(values, dict) or values.get("data_base64") is None:
            return values
        if values.get("data") is not None:
            raise ValueError("A CloudEvent cannot carry both 'data' and 'data_base64'")
        try:
            decoded = base64.b64decode(values["data_base64"], validate=True)
        except (binascii.Error, TypeError) as exc:
            raise ValueError("The CloudEvent 'data_base64' attribute is not valid base64") from exc
        return {**values, "data": decoded}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CloudEvent":
        """Decode a structured-mode JSON object, upgrading 0.1 envelopes."""
        if "cloudEventsVersion" in raw and "specversion" not in raw:
            raw = _upgrade_v01(raw)
        return cls.model_validate(raw)

    @property
    def extensions(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    # "type" is a field name here, so the builtin is out of reach
    def get_payload(self, model: Type[T]) -> T | None:
        """Project the event data onto ``model``."""
        return project_payload(self.data, model)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the CloudEvents structured-mode wire format."""
        exclude = {"data"} if self.data_base64 is not None else set()
        return self.model_dump(mode="json", exclude_none=True, exclude=exclude)


def _upgrade_v01(raw: dict[str, Any]) -> dict[str, Any]:
    upgraded: dict[str, Any] = {"specversion": raw["cloudEventsVersion"]}
    for old_name, new_name in _V01_ATTRIBUTES.items():
        if old_name in raw:
            upgraded[new_name] = raw[old_name]
    if raw.get("eventTypeVersion") is not None:
        upgraded["eventtypeversion"] = raw["eventTypeVersion"]
    extensions = raw.get("extensions")
    if isinstance(extensions, dict):
        for name, value in extensions.items():
            upgraded.setdefault(name.lower(), value)
    return upgraded


class Event(BaseModel):
    """
    Uniform view over exactly one CloudEvent or EventGridEvent envelope.

    Accessors resolve against whichever envelope is present; attributes the
    CloudEvents schema has no counterpart for (data and metadata versions)
    are None for CloudEvents.
    """
    model_config = ConfigDict(frozen=True)

    cloud_event: CloudEvent | None = None
    event_grid_event: EventGridEvent | None = None

    @model_validator(mode="after")
    def _exactly_one_envelope(self) -> "Event":
        if (self.cloud_event is None) == (self.event_grid_event is None):
            raise ValueError("An event wraps exactly one CloudEvent or EventGridEvent envelope")
        return self

    @classmethod
    def from_cloud_event(cls, cloud_event: CloudEvent) -> "Event":
        return cls(cloud_event=cloud_event)

    @classmethod
    def from_event_grid_event(cls, event_grid_event: EventGridEvent) -> "Event":
        return cls(event_grid_event=event_grid_event)

    @property
    def event_schema(self) -> EventSchema:
        return EventSchema.CLOUD_EVENT if self.cloud_event is not None else EventSchema.EVENT_GRID

    @property
    def id(self) -> str:
        if self.event_grid_event is not None:
            return self.event_grid_event.id
        return self.cloud_event.id

    @property
    def topic(self) -> str | None:
        if self.event_grid_event is not None:
            return self.event_grid_event.topic
        return self.cloud_event.source.split("#", 1)[0]

    @property
    def subject(self) -> str | None:
        if self.event_grid_event is not None:
            return self.event_grid_event.subject
        if self.cloud_event.subject is not None:
            return self.cloud_event.subject
        _, hashtag, subject = self.cloud_event.source.partition("#")
        return subject if hashtag else None

    @property
    def event_type(self) -> str:
        if self.event_grid_event is not None:
            return self.event_grid_event.event_type
        return self.cloud_event.type

    @property
    def event_time(self) -> datetime | None:
        if self.event_grid_event is not None:
            return self.event_grid_event.event_time
        return self.cloud_event.time

    @property
    def data_version(self) -> str | None:
        if self.event_grid_event is not None:
            return self.event_grid_event.data_version
        return None

    @property
    def metadata_version(self) -> str | None:
        if self.event_grid_event is not None:
            return self.event_grid_event.metadata_version
        return None

    @property
    def data(self) -> Any:
        if self.event_grid_event is not None:
            return self.event_grid_event.data
        return self.cloud_event.data

    def as_cloud_event(self) -> CloudEvent | None:
        return self.cloud_event

    def as_event_grid_event(self) -> EventGridEvent | None:
        return self.event_grid_event

    def get_payload(self, model: type[T]) -> T | None:
        """Project the event data onto ``model``."""
        return project_payload(self.data, model)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the wrapped envelope in its own wire format."""
        if self.event_grid_event is not None:
            return self.event_grid_event.to_dict()
        return self.cloud_event.to_dict()


class EventBatch(BaseModel, Generic[TEvent]):
    """Events parsed from one payload, grouped under a session id."""
    model_config = ConfigDict(frozen=True)

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()), min_length=1)
    events: tuple[TEvent, ...]

from datetime import datetime
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..events.models import EventSchema
from ..stores.base import ReceivedEvent


class WebhookResponse(BaseModel):
    session_id: str
    count: int
    event_ids: List[str]


class EventListResponse(BaseModel):
    total: int
    events: List[ReceivedEvent]


class PublishRequest(BaseModel):
    """Ad hoc event to publish; ``source`` applies to CloudEvents only."""
    event_schema: EventSchema = Field(EventSchema.EVENT_GRID, alias="schema")
    id: str | None = None
    event_type: str = Field(..., min_length=1)
    subject: str = "/"
    source: str | None = None
    data_version: str = "1.0"
    event_time: datetime | None = None
    data: Any = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _source_for_cloud_events_only(self) -> "PublishRequest":
        if self.source is not None and self.event_schema is EventSchema.EVENT_GRID:
            raise ValueError("'source' only applies to CloudEvent schema events")
        return self


class PublishResponse(BaseModel):
    id: str
    status: str
    event_schema: EventSchema = Field(..., serialization_alias="schema")

"""Azure Event Hubs capture event data."""
from datetime import datetime

from .base import AzureEventData

CAPTURE_FILE_CREATED_EVENT_TYPE = "Microsoft.EventHub.CaptureFileCreated"


class EventHubCaptureEventData(AzureEventData):
    """Describes an Avro capture file written for one partition."""
    file_url: str | None = None
    file_type: str | None = None
    partition_id: str | None = None
    size_in_bytes: int | None = None
    event_count: int | None = None
    first_sequence_number: int | None = None
    last_sequence_number: int | None = None
    first_enqueue_time: datetime | None = None
    last_enqueue_time: datetime | None = None

"""Azure IoT Hub device lifecycle event data."""
from datetime import datetime
from typing import Any

from pydantic import Field

from .base import AzureEventData

DEVICE_CREATED_EVENT_TYPE = "Microsoft.Devices.DeviceCreated"
DEVICE_DELETED_EVENT_TYPE = "Microsoft.Devices.DeviceDeleted"


class Metadata(AzureEventData):
    last_updated: datetime | None = None


class PropertyConfiguration(AzureEventData):
    """Desired or reported twin properties with their bookkeeping entries."""
    metadata: dict[str, Any] = Field(default_factory=dict, alias="$metadata")
    version: int | None = Field(None, alias="$version")


class TwinProperties(AzureEventData):
    desired: PropertyConfiguration | None = None
    reported: PropertyConfiguration | None = None


class X509Thumbprint(AzureEventData):
    primary_thumbprint: Any = None
    secondary_thumbprint: Any = None


class Twin(AzureEventData):
    authentication_type: str | None = None
    cloud_to_device_message_count: int | None = None
    connection_state: str | None = None
    device_etag: Any = None
    device_id: str | None = None
    etag: str | None = None
    last_activity_time: datetime | None = None
    properties: TwinProperties | None = None
    status: str | None = None
    status_update_time: datetime | None = None
    version: int | None = None
    x509_thumbprint: X509Thumbprint | None = None


class IoTDeviceEventData(AzureEventData):
    device_id: str | None = None
    hub_name: str | None = None
    operation_timestamp: datetime | None = None
    op_type: str | None = None
    twin: Twin | None = None

"""
Typed event data contracts for well-known Azure event sources

Use with ``Event.get_payload`` / ``EventGridEvent.get_payload`` to project
untyped event data onto a concrete model.
"""

from .base import AzureEventData
from .eventhubs import CAPTURE_FILE_CREATED_EVENT_TYPE, EventHubCaptureEventData
from .iothub import (
    DEVICE_CREATED_EVENT_TYPE,
    DEVICE_DELETED_EVENT_TYPE,
    IoTDeviceEventData,
    Metadata,
    PropertyConfiguration,
    Twin,
    TwinProperties,
    X509Thumbprint,
)
from .resources import AzureResourceEventData
from .storage import (
    BLOB_CREATED_EVENT_TYPE,
    BLOB_DELETED_EVENT_TYPE,
    BlobEventData,
    StorageDiagnostics,
)
from .subscription import (
    SUBSCRIPTION_VALIDATION_EVENT_TYPE,
    SubscriptionValidationEventData,
    SubscriptionValidationResponse,
)

__all__ = [
    "AzureEventData",
    "AzureResourceEventData",
    "BlobEventData",
    "StorageDiagnostics",
    "BLOB_CREATED_EVENT_TYPE",
    "BLOB_DELETED_EVENT_TYPE",
    "EventHubCaptureEventData",
    "CAPTURE_FILE_CREATED_EVENT_TYPE",
    "IoTDeviceEventData",
    "Metadata",
    "PropertyConfiguration",
    "Twin",
    "TwinProperties",
    "X509Thumbprint",
    "DEVICE_CREATED_EVENT_TYPE",
    "DEVICE_DELETED_EVENT_TYPE",
    "SubscriptionValidationEventData",
    "SubscriptionValidationResponse",
    "SUBSCRIPTION_VALIDATION_EVENT_TYPE",
]

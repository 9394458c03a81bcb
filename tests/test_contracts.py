"""Tests for typed Azure event data contracts."""
import orjson

from gridbridge.contracts import (
    DEVICE_CREATED_EVENT_TYPE,
    AzureResourceEventData,
    EventHubCaptureEventData,
    IoTDeviceEventData,
    SubscriptionValidationEventData,
    SubscriptionValidationResponse,
)
from gridbridge.events import EventParser

IOT_DEVICE_CREATED_EVENT = {
    "id": "38e6f2cc-7c5b-4e4e-a5a0-7f8ec8b2e1a3",
    "topic": "/SUBSCRIPTIONS/xxx/resourceGroups/iot/providers/Microsoft.Devices/IotHubs/hub",
    "subject": "devices/grid-device",
    "eventType": DEVICE_CREATED_EVENT_TYPE,
    "eventTime": "2018-01-02T19:17:44.4383997Z",
    "dataVersion": "1",
    "metadataVersion": "1",
    "data": {
        "twin": {
            "deviceId": "grid-device",
            "etag": "AAAAAAAAAAE=",
            "deviceEtag": "null",
            "status": "enabled",
            "statusUpdateTime": "0001-01-01T00:00:00",
            "connectionState": "Disconnected",
            "lastActivityTime": "0001-01-01T00:00:00",
            "cloudToDeviceMessageCount": 0,
            "authenticationType": "sas",
            "x509Thumbprint": {"primaryThumbprint": None, "secondaryThumbprint": None},
            "version": 2,
            "properties": {
                "desired": {"$metadata": {"$lastUpdated": "2018-01-02T19:17:44.4383997Z"}, "$version": 1},
                "reported": {"$metadata": {"$lastUpdated": "2018-01-02T19:17:44.4383997Z"}, "$version": 1},
            },
        },
        "hubName": "grid-hub",
        "deviceId": "grid-device",
        "operationTimestamp": "2018-01-02T19:17:44.438399Z",
        "opType": "DeviceCreated",
    },
}


def test_iot_device_event_data():
    event = EventParser.parse(orjson.dumps(IOT_DEVICE_CREATED_EVENT)).events[0]

    data = event.get_payload(IoTDeviceEventData)

    assert data.hub_name == "grid-hub"
    assert data.device_id == "grid-device"
    assert data.op_type == "DeviceCreated"
    assert data.twin.cloud_to_device_message_count == 0
    assert data.twin.properties.desired.version == 1
    assert "$lastUpdated" in data.twin.properties.reported.metadata
    assert data.twin.x509_thumbprint.primary_thumbprint is None


def test_event_hub_capture_event_data():
    data = EventHubCaptureEventData.model_validate(
        {
            "fileUrl": "https://gridstorage.blob.core.windows.net/capture/hub/0/2017/08/31/21/28/10.avro",
            "fileType": "AzureBlockBlob",
            "partitionId": "1",
            "sizeInBytes": 0,
            "eventCount": 0,
            "firstSequenceNumber": -1,
            "lastSequenceNumber": -1,
            "firstEnqueueTime": "0001-01-01T00:00:00",
            "lastEnqueueTime": "0001-01-01T00:00:00",
        }
    )

    assert data.partition_id == "1"
    assert data.first_sequence_number == -1
    assert data.first_enqueue_time.year == 1


def test_resource_event_data_ignores_unknown_fields():
    data = AzureResourceEventData.model_validate(
        {
            "tenantId": "tenant",
            "subscriptionId": "subscription",
            "resourceProvider": "Microsoft.Storage",
            "operationName": "Microsoft.Storage/storageAccounts/write",
            "status": "Succeeded",
            "claims": {"name": "user"},
            "unknownField": "ignored",
        }
    )

    assert data.resource_provider == "Microsoft.Storage"
    assert data.claims == {"name": "user"}
    assert not hasattr(data, "unknownField")


def test_subscription_validation_contracts(subscription_validation_event):
    event = EventParser.parse(orjson.dumps(subscription_validation_event)).events[0]

    data = event.get_payload(SubscriptionValidationEventData)
    response = SubscriptionValidationResponse(validation_response=data.validation_code)

    assert data.validation_url.startswith("https://")
    assert response.model_dump(by_alias=True) == {"validationResponse": "512d38b6-c7b8-40c8-89fe-f46f9e9622b6"}

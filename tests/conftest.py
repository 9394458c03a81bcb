"""Shared sample deliveries for the test suite."""
import pytest
from pydantic import BaseModel, ConfigDict, Field


class CarEventData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    license_plate: str = Field(..., alias="licensePlate")


BLOB_CREATED_EVENT = {
    "topic": "/subscriptions/00000000-0000-0000-0000-000000000000/resourceGroups/storage/providers/Microsoft.Storage/storageAccounts/xstoretestaccount",
    "subject": "/blobServices/default/containers/testcontainer/blobs/testfile.txt",
    "eventType": "Microsoft.Storage.BlobCreated",
    "eventTime": "2017-06-26T18:41:00.9584103Z",
    "id": "831e1650-001e-001b-66ab-eeb76e069631",
    "data": {
        "api": "PutBlockList",
        "clientRequestId": "6d79dbfb-0e37-4fc4-981f-442c9ca65760",
        "requestId": "831e1650-001e-001b-66ab-eeb76e000000",
        "eTag": "0x8D4BCC2E4835CD0",
        "contentType": "application/octet-stream",
        "contentLength": 524288,
        "blobType": "BlockBlob",
        "url": "https://example.blob.core.windows.net/testcontainer/testfile.txt",
        "sequencer": "00000000000004420000000000028963",
        "storageDiagnostics": {"batchId": "b68529f3-68cd-4744-baa4-3c0498ec19f0"},
    },
    "dataVersion": "",
    "metadataVersion": "1",
}

CAR_CLOUD_EVENT = {
    "specversion": "1.0",
    "type": "Arcus.Samples.Cars.NewCarRegistered",
    "source": "http://test-host#/cars/1-TOM-337",
    "id": "b6d5bbe5-6f50-43d6-a3f8-3c4a5b7ec1ec",
    "time": "2020-02-12T10:05:29.6393216Z",
    "datacontenttype": "application/json",
    "data": {"licensePlate": "1-TOM-337"},
}

SUBSCRIPTION_VALIDATION_EVENT = {
    "id": "2d1781af-3a4c-4d7c-bd0c-e34b19da4e66",
    "topic": "/subscriptions/xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx",
    "subject": "",
    "data": {
        "validationCode": "512d38b6-c7b8-40c8-89fe-f46f9e9622b6",
        "validationUrl": "https://rp-eastus2.eventgrid.azure.net:553/eventsubscriptions/estest/validate?id=512d38b6",
    },
    "eventType": "Microsoft.EventGrid.SubscriptionValidationEvent",
    "eventTime": "2018-01-25T22:12:19.4556811Z",
    "metadataVersion": "1",
    "dataVersion": "1",
}


@pytest.fixture
def blob_created_event() -> dict:
    return dict(BLOB_CREATED_EVENT)


@pytest.fixture
def car_cloud_event() -> dict:
    return dict(CAR_CLOUD_EVENT)


@pytest.fixture
def subscription_validation_event() -> dict:
    return dict(SUBSCRIPTION_VALIDATION_EVENT)

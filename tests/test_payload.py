"""Tests for projecting event data onto typed payloads."""
import orjson
import pytest

from gridbridge.contracts import BlobEventData
from gridbridge.errors import EventPayloadError
from gridbridge.events import EventGridEvent, EventParser, project_payload

from conftest import CarEventData


def test_cloud_event_payload_is_projected(car_cloud_event):
    event = EventParser.parse(orjson.dumps(car_cloud_event)).events[0]

    car = event.get_payload(CarEventData)

    assert isinstance(car, CarEventData)
    assert car.license_plate == "1-TOM-337"
    assert event.as_cloud_event().get_payload(CarEventData) == car


def test_event_grid_payload_is_projected(blob_created_event):
    event = EventParser.parse(orjson.dumps(blob_created_event)).events[0]

    blob = event.as_event_grid_event().get_payload(BlobEventData)

    assert blob.api == "PutBlockList"
    assert blob.content_length == 524288
    assert blob.storage_diagnostics.batch_id == "b68529f3-68cd-4744-baa4-3c0498ec19f0"


def test_payload_of_the_requested_type_is_returned_as_is(blob_created_event):
    car = CarEventData(license_plate="1-TOM-337")
    event = EventGridEvent.model_validate({**blob_created_event, "data": car})

    assert event.get_payload(CarEventData) is car


def test_missing_data_projects_to_none(blob_created_event):
    event = EventGridEvent.model_validate({**blob_created_event, "data": None})

    assert event.get_payload(CarEventData) is None


def test_json_text_is_validated_directly():
    assert project_payload('{"licensePlate": "1-TOM-337"}', CarEventData).license_plate == "1-TOM-337"
    assert project_payload(b"[1, 2, 3]", list[int]) == [1, 2, 3]


def test_model_data_is_round_tripped_through_json():
    blob = BlobEventData(api="PutBlob", content_length=3)

    projected = project_payload(blob, dict)

    assert projected["api"] == "PutBlob"
    assert projected["contentLength"] == 3


def test_mismatching_data_raises_payload_error():
    with pytest.raises(EventPayloadError) as exc_info:
        project_payload({"color": "red"}, CarEventData)

    assert "CarEventData" in str(exc_info.value)


def test_bool_data_is_not_returned_as_int():
    projected = project_payload(True, int)

    assert projected == 1
    assert type(projected) is int
    assert project_payload(True, bool) is True

"""Tests for Event Grid subscription validation."""
import orjson
from fastapi.testclient import TestClient

from gridbridge.config import Settings
from gridbridge.main import create_app
from gridbridge.stores import InMemoryEventStore

from conftest import BLOB_CREATED_EVENT, SUBSCRIPTION_VALIDATION_EVENT

VALIDATION_HEADERS = {"Aeg-Event-Type": "SubscriptionValidation", "Content-Type": "application/json"}


def make_client(**settings) -> TestClient:
    app = create_app(Settings(**settings), store=InMemoryEventStore())
    return TestClient(app)


def test_cloud_events_handshake_allows_origin():
    r = make_client().options("/v1/webhook", headers={"WebHook-Request-Origin": "eventemitter.example.com"})

    assert r.status_code == 200
    assert r.headers["WebHook-Allowed-Rate"] == "*"
    assert r.headers["WebHook-Allowed-Origin"] == "eventemitter.example.com"


def test_cloud_events_handshake_requires_origin():
    r = make_client().options("/v1/webhook")

    assert r.status_code == 400


def test_subscription_validation_echoes_code():
    r = make_client().post(
        "/v1/webhook", content=orjson.dumps([SUBSCRIPTION_VALIDATION_EVENT]), headers=VALIDATION_HEADERS
    )

    assert r.status_code == 200
    assert r.json() == {"validationResponse": "512d38b6-c7b8-40c8-89fe-f46f9e9622b6"}


def test_subscription_validation_requires_exactly_one_event():
    r = make_client().post(
        "/v1/webhook",
        content=orjson.dumps([SUBSCRIPTION_VALIDATION_EVENT, SUBSCRIPTION_VALIDATION_EVENT]),
        headers=VALIDATION_HEADERS,
    )

    assert r.status_code == 400


def test_subscription_validation_requires_validation_code():
    r = make_client().post("/v1/webhook", content=orjson.dumps(BLOB_CREATED_EVENT), headers=VALIDATION_HEADERS)

    assert r.status_code == 400


def test_subscription_validation_rejects_unparseable_body():
    r = make_client().post("/v1/webhook", content=b"42", headers=VALIDATION_HEADERS)

    assert r.status_code == 400


def test_validation_events_are_not_stored():
    store = InMemoryEventStore()
    client = TestClient(create_app(Settings(), store=store))

    client.post("/v1/webhook", content=orjson.dumps([SUBSCRIPTION_VALIDATION_EVENT]), headers=VALIDATION_HEADERS)

    assert client.get("/v1/events").json()["total"] == 0


def test_validation_is_authorized_when_required():
    client = make_client(REQUIRE_AUTH=True, SECRETS="eventgrid-webhook-key=s3cr3t")
    body = orjson.dumps([SUBSCRIPTION_VALIDATION_EVENT])

    assert client.post("/v1/webhook", content=body, headers=VALIDATION_HEADERS).status_code == 401
    assert client.options("/v1/webhook", headers={"WebHook-Request-Origin": "example.com"}).status_code == 401

    r = client.post("/v1/webhook", content=body, headers={**VALIDATION_HEADERS, "x-api-key": "s3cr3t"})
    assert r.status_code == 200
    assert r.json()["validationResponse"] == "512d38b6-c7b8-40c8-89fe-f46f9e9622b6"


def test_other_paths_are_not_intercepted():
    r = make_client().options("/v1/events", headers={"WebHook-Request-Origin": "example.com"})

    assert "WebHook-Allowed-Origin" not in r.headers

"""
Event Grid topic publisher.

Wraps the Azure SDK's async ``EventGridPublisherClient`` with resilience
policies, dependency tracking and structured logging.
"""
import asyncio
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence
from urllib.parse import urlparse

import orjson
import structlog
from azure.core.credentials import AzureKeyCredential
from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import AzureError
from azure.core.messaging import CloudEvent as SdkCloudEvent
from azure.eventgrid import EventGridEvent as SdkEventGridEvent
from azure.eventgrid.aio import EventGridPublisherClient

from ..errors import CircuitOpenError, EventPublishingError
from ..events.models import CloudEvent, EventGridEvent, EventSchema, RawEvent
from ..metrics import Metrics
from ..security.secrets import SecretProvider
from .options import PublisherOptions

log = structlog.get_logger()

OutboundEvent = EventGridEvent | CloudEvent


def _schema_of(event: OutboundEvent) -> EventSchema:
    if isinstance(event, CloudEvent):
        return EventSchema.CLOUD_EVENT
    if isinstance(event, EventGridEvent):
        return EventSchema.EVENT_GRID
    raise TypeError(
        f"Cannot publish an event of type '{type(event).__name__}', "
        "requires an EventGridEvent, RawEvent or CloudEvent"
    )


def _current_transaction_id() -> str:
    # Bound per request by the correlation middleware
    correlation_id = structlog.contextvars.get_contextvars().get("correlation_id")
    return correlation_id or str(uuid.uuid4())


def _to_sdk_event(event: OutboundEvent, data: Any) -> SdkEventGridEvent | SdkCloudEvent:
    if isinstance(event, CloudEvent):
        return SdkCloudEvent(
            source=event.source,
            type=event.type,
            data=data,
            specversion=event.specversion,
            id=event.id,
            time=event.time,
            subject=event.subject,
            datacontenttype=event.datacontenttype,
            dataschema=event.dataschema,
            extensions=event.extensions or None,
        )
    return SdkEventGridEvent(
        subject=event.subject,
        event_type=event.event_type,
        data=data,
        data_version=event.data_version or "1.0",
        topic=event.topic,
        metadata_version=event.metadata_version,
        id=event.id,
        event_time=event.event_time,
    )


class EventGridPublisher:
    """
    Publishes EventGridEvents and CloudEvents to one Event Grid topic.

    Exactly one authentication source is required: an access key, an Azure
    token credential, the name of a secret holding the access key (together
    with a secret provider), or a pre-built SDK client.

    Args:
        topic_endpoint: HTTP(S) URL of the custom topic
        authentication_key: Topic access key
        credential: Azure token credential (e.g. DefaultAzureCredential)
        secret_provider: Provider resolving ``authentication_key_secret_name``
        authentication_key_secret_name: Name of the secret holding the key
        options: Dependency tracking and resilience options
        client: Pre-built ``EventGridPublisherClient``
        metrics: Prometheus metrics to record publish calls on

    Raises:
        ValueError: If the endpoint is not an HTTP(S) URL or the
            authentication sources are missing or ambiguous
    """

    def __init__(
        self,
        topic_endpoint: str,
        authentication_key: str | None = None,
        *,
        credential: AsyncTokenCredential | None = None,
        secret_provider: SecretProvider | None = None,
        authentication_key_secret_name: str | None = None,
        options: PublisherOptions | None = None,
        client: EventGridPublisherClient | None = None,
        metrics: Metrics | None = None,
    ):
        if not topic_endpoint or not topic_endpoint.strip():
            raise ValueError("Requires a non-blank Event Grid topic endpoint")
        parsed = urlparse(topic_endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(
                f"Requires an HTTP or HTTPS Event Grid topic endpoint, got '{topic_endpoint}'"
            )

        if authentication_key is not None and not authentication_key.strip():
            raise ValueError("Requires a non-blank authentication key")
        if authentication_key_secret_name is not None:
            if not authentication_key_secret_name.strip():
                raise ValueError("Requires a non-blank authentication key secret name")
            if secret_provider is None:
                raise ValueError("Requires a secret provider to resolve the authentication key secret")

        sources = [
            authentication_key is not None,
            credential is not None,
            authentication_key_secret_name is not None,
            client is not None,
        ]
        if sum(sources) != 1:
            raise ValueError(
                "Requires exactly one authentication source: an authentication key, "
                "a credential, an authentication key secret name or a client"
            )

        self.topic_endpoint = topic_endpoint
        self.options = options or PublisherOptions()
        self._authentication_key = authentication_key
        self._credential = credential
        self._secret_provider = secret_provider
        self._secret_name = authentication_key_secret_name
        self._client = client
        self._owns_client = client is None
        self._client_lock = asyncio.Lock()
        self._policy = self.options.policy
        self._metrics = metrics

    async def _get_client(self) -> EventGridPublisherClient:
        """Build the SDK client on first use."""
        if self._client is not None:
            return self._client
        async with self._client_lock:
            if self._client is None:
                if self._credential is not None:
                    credential = self._credential
                else:
                    key = self._authentication_key
                    if key is None:
                        key = await self._secret_provider.get_raw_secret(self._secret_name)
                    credential = AzureKeyCredential(key)
                self._client = EventGridPublisherClient(self.topic_endpoint, credential)
                log.debug("eventgrid.client_created", topic=self.topic_endpoint)
        return self._client

    async def publish(self, event: OutboundEvent):
        """Publish a single EventGridEvent, RawEvent or CloudEvent."""
        await self.publish_many([event])

    async def publish_many(self, events: Iterable[OutboundEvent]):
        """
        Publish events of one schema in a single call.

        Raises:
            ValueError: If no events are given or schemas are mixed
            AzureError: If the topic rejects the events after all policies ran
            CircuitOpenError: If the circuit breaker rejects the call
            EventPublishingError: On any other failure
        """
        events = list(events) if events is not None else []
        if not events:
            raise ValueError("Requires at least one event to publish")
        schemas = {_schema_of(event) for event in events}
        if len(schemas) > 1:
            raise ValueError("Cannot publish EventGridEvents and CloudEvents in the same call")
        schema = schemas.pop()

        dependency_id = None
        bodies = [event.data for event in events]
        if self.options.enable_dependency_tracking:
            dependency_id = self.options.generate_dependency_id()
            bodies = self._add_tracking(bodies, dependency_id)
        sdk_events = [_to_sdk_event(event, body) for event, body in zip(events, bodies)]

        client = await self._get_client()
        start = time.perf_counter()
        error: BaseException | None = None
        try:
            await self._policy.execute(lambda: client.send(sdk_events))
        except (AzureError, CircuitOpenError) as exc:
            error = exc
            raise
        except Exception as exc:
            error = exc
            raise EventPublishingError(
                f"Failed to publish {len(events)} event(s) to '{self.topic_endpoint}': {exc}"
            ) from exc
        finally:
            duration = time.perf_counter() - start
            self._track(schema, events, duration, error, dependency_id)

    def _add_tracking(self, bodies: Sequence[Any], dependency_id: str) -> list[Any]:
        transaction_id = _current_transaction_id()
        tracked = []
        for body in bodies:
            if isinstance(body, dict):
                body = {
                    **body,
                    self.options.upstream_service_property_name: dependency_id,
                    self.options.transaction_id_property_name: transaction_id,
                }
            tracked.append(body)
        return tracked

    def _track(
        self,
        schema: EventSchema,
        events: Sequence[OutboundEvent],
        duration_s: float,
        error: BaseException | None,
        dependency_id: str | None,
    ):
        if self._metrics is not None:
            self._metrics.record_publish(schema.value, len(events), duration_s, error)

        event_types = sorted({e.type if isinstance(e, CloudEvent) else e.event_type for e in events})
        entry = {
            "topic": self.topic_endpoint,
            "schema": schema.value,
            "event_type": ",".join(event_types),
            "event_count": len(events),
            "success": error is None,
            "duration_ms": round(duration_s * 1000, 2),
        }
        if error is not None:
            entry["error_type"] = type(error).__name__
        if dependency_id is not None:
            entry["dependency_id"] = dependency_id
            log.info("eventgrid.dependency", **self.options.telemetry_context, **entry)
        elif error is None:
            log.info("eventgrid.published", **entry)
        else:
            log.warning("eventgrid.publish_failed", **entry)

    async def publish_raw_event_grid_event(
        self,
        event_id: str,
        event_type: str,
        event_body: str,
        event_subject: str = "/",
        data_version: str = "1.0",
        event_time: datetime | None = None,
    ):
        """
        Publish an ad hoc Event Grid event whose body is JSON text.

        Raises:
            ValueError: If an argument is blank or the body is not valid JSON
        """
        for value, name in ((event_id, "event ID"), (event_type, "event type"), (event_body, "event body")):
            if not value or not value.strip():
                raise ValueError(f"Requires a non-blank {name}")
        raw = RawEvent.create(
            event_id=event_id,
            event_type=event_type,
            event_body=event_body,
            event_subject=event_subject,
            data_version=data_version,
            event_time=event_time,
        )
        await self.publish(raw)

    async def publish_raw_cloud_event(
        self,
        event_id: str,
        event_type: str,
        source: str,
        event_body: str,
        event_subject: str = "/",
        event_time: datetime | None = None,
        spec_version: str = "1.0",
    ):
        """
        Publish an ad hoc CloudEvent whose body is JSON text.

        Raises:
            ValueError: If an argument is blank or the body is not valid JSON
        """
        for value, name in (
            (event_id, "event ID"),
            (event_type, "event type"),
            (source, "event source"),
            (event_body, "event body"),
        ):
            if not value or not value.strip():
                raise ValueError(f"Requires a non-blank {name}")
        try:
            data = orjson.loads(event_body)
        except orjson.JSONDecodeError as exc:
            raise ValueError("The event body is not a valid JSON payload") from exc
        cloud_event = CloudEvent(
            id=event_id,
            type=event_type,
            source=source,
            subject=event_subject,
            time=event_time or datetime.now(timezone.utc),
            specversion=spec_version,
            datacontenttype="application/json",
            data=data,
        )
        await self.publish(cloud_event)

    async def close(self):
        if self._client is not None:
            await self._client.close()
            if self._owns_client:
                self._client = None

    async def __aenter__(self) -> "EventGridPublisher":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

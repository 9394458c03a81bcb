"""
GridBridge - Azure Event Grid webhook receiver and publisher.

Features:
- Event Grid and CloudEvents webhook deliveries, single or batched
- Shared-secret webhook authorization and subscription validation
- Publishing to Event Grid topics with retries and circuit breaking
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
from contextlib import asynccontextmanager

from azure.identity.aio import DefaultAzureCredential
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from .api import publish_router, router
from .api.dependencies import authorize_request
from .config import Settings, get_settings
from .health import HealthChecker
from .logging import get_logger, setup_logging
from .metrics import Metrics
from .middleware import (
    CorrelationIdMiddleware,
    ErrorHandlerMiddleware,
    MetricsMiddleware,
    ValidationMiddleware,
)
from .publishing.options import PublisherOptions
from .publishing.publisher import EventGridPublisher
from .security.authorization import EventGridAuthorization, HttpRequestProperty
from .security.secrets import SecretProvider, create_default_secret_provider
from .security.validation import SubscriptionValidationMiddleware
from .services.receiver import EventReceiver, create_default_store
from .stores.base import EventStore

SERVICE_NAME = "gridbridge"
VERSION = "0.1.0"

logger = get_logger()


def create_publisher(
    settings: Settings,
    secret_provider: SecretProvider,
    metrics: Metrics | None = None,
) -> EventGridPublisher | None:
    """
    Create the Event Grid publisher from configuration.

    The topic key is read through the secret provider when
    ``EVENTGRID_TOPIC_KEY_SECRET_NAME`` is set, otherwise the publisher
    authenticates with ``DefaultAzureCredential``.

    Returns:
        The publisher, or None when no topic endpoint is configured
    """
    if not settings.EVENTGRID_TOPIC_ENDPOINT:
        return None

    options = PublisherOptions()
    if settings.PUBLISH_RETRY_COUNT > 0:
        options.with_exponential_retry(settings.PUBLISH_RETRY_COUNT)
    if settings.PUBLISH_CIRCUIT_BREAKER_EXCEPTIONS > 0:
        options.with_circuit_breaker(
            settings.PUBLISH_CIRCUIT_BREAKER_EXCEPTIONS,
            settings.PUBLISH_CIRCUIT_BREAKER_SECONDS,
        )

    if settings.EVENTGRID_TOPIC_KEY_SECRET_NAME:
        return EventGridPublisher(
            settings.EVENTGRID_TOPIC_ENDPOINT,
            secret_provider=secret_provider,
            authentication_key_secret_name=settings.EVENTGRID_TOPIC_KEY_SECRET_NAME,
            options=options,
            metrics=metrics,
        )
    return EventGridPublisher(
        settings.EVENTGRID_TOPIC_ENDPOINT,
        credential=DefaultAzureCredential(),
        options=options,
        metrics=metrics,
    )


def create_app(
    settings: Settings | None = None,
    *,
    store: EventStore | None = None,
    publisher: EventGridPublisher | None = None,
    secret_provider: SecretProvider | None = None,
) -> FastAPI:
    """
    Build the GridBridge application.

    Collaborators not passed in are created from ``settings``.
    """
    settings = settings or get_settings()
    setup_logging(json_output=settings.LOG_JSON, service_name=SERVICE_NAME)

    metrics = Metrics(service_name=SERVICE_NAME, version=VERSION)
    store = store or create_default_store(settings)
    secret_provider = secret_provider or create_default_secret_provider(settings)
    if publisher is None:
        publisher = create_publisher(settings, secret_provider, metrics)

    authorization = None
    if settings.REQUIRE_AUTH:
        authorization = EventGridAuthorization(
            HttpRequestProperty.parse(settings.AUTH_PROPERTY_LOCATION),
            settings.AUTH_PROPERTY_NAME,
            settings.AUTH_SECRET_NAME,
            emit_security_events=settings.EMIT_SECURITY_EVENTS,
        )

    health_checker = HealthChecker(
        service_name=SERVICE_NAME,
        version=VERSION,
        store=store,
        publisher_configured=publisher is not None,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "service_starting",
            version=VERSION,
            env=settings.ENV,
            store=type(store).__name__,
            publisher_configured=publisher is not None,
            require_auth=settings.REQUIRE_AUTH,
        )
        try:
            yield
        finally:
            logger.info("service_stopping")
            metrics.app_up.labels(service=SERVICE_NAME, version=VERSION).set(0)
            if publisher is not None:
                await publisher.close()
            await store.close()
            await secret_provider.close()

    app = FastAPI(
        title="GridBridge",
        version=VERSION,
        description="Azure Event Grid webhook receiver and publisher with unified observability",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.metrics = metrics
    app.state.secret_provider = secret_provider
    app.state.authorization = authorization
    app.state.publisher = publisher
    app.state.receiver = EventReceiver(store, metrics=metrics)

    # Last added runs first: correlation ID, errors, metrics, then payload checks
    app.add_middleware(
        SubscriptionValidationMiddleware,
        paths=[router.WEBHOOK_PATH],
        authorization=authorize_request,
    )
    app.add_middleware(ValidationMiddleware, max_size=settings.MAX_EVENT_SIZE)
    app.add_middleware(MetricsMiddleware, metrics=metrics)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(router.router)
    app.include_router(publish_router.router)

    app.mount("/metrics", make_asgi_app(registry=metrics.registry))

    @app.get("/health")
    async def health():
        """
        Liveness probe - basic health check.

        Returns 200 if service is running.
        """
        logger.debug("health_check_liveness")
        return health_checker.liveness()

    @app.get("/health/ready")
    async def health_ready():
        """
        Readiness probe - comprehensive health check.

        Returns:
            200: Service is ready to handle traffic
            503: Service is not ready
        """
        logger.debug("health_check_readiness")
        metrics.update_system_metrics()
        result = await health_checker.readiness()
        status_code = 200 if result["status"] == "ready" else 503
        return JSONResponse(status_code=status_code, content=result)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gridbridge.main:app",
        host="0.0.0.0",
        port=get_settings().SERVICE_PORT,
        reload=True,
    )

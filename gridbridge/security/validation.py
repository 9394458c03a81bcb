"""
Event Grid subscription validation.

Before delivering events, Event Grid proves that the webhook owner wants
them: CloudEvents subscriptions send an ``OPTIONS`` abuse-protection
handshake, Event Grid schema subscriptions post a
``SubscriptionValidationEvent`` whose code must be echoed back.
"""
from typing import Awaitable, Callable, Iterable

import structlog
from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from ..contracts.subscription import SubscriptionValidationEventData, SubscriptionValidationResponse
from ..errors import EventParsingError, EventPayloadError
from ..events.parser import EventParser

log = structlog.get_logger()

WEBHOOK_REQUEST_ORIGIN_HEADER = "WebHook-Request-Origin"
WEBHOOK_ALLOWED_ORIGIN_HEADER = "WebHook-Allowed-Origin"
WEBHOOK_ALLOWED_RATE_HEADER = "WebHook-Allowed-Rate"
AEG_EVENT_TYPE_HEADER = "Aeg-Event-Type"
SUBSCRIPTION_VALIDATION_EVENT_TYPE = "SubscriptionValidation"


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "BadRequest", "message": message})


class EventGridSubscriptionValidator:
    """Answers the two Event Grid subscription validation requests."""

    def validate_cloud_events_handshake(self, request: Request) -> Response:
        """
        Answer a CloudEvents ``OPTIONS`` abuse-protection handshake.

        Returns:
            200 allowing the requesting origin at any rate, or 400 when the
            ``WebHook-Request-Origin`` header is missing
        """
        origin = request.headers.get(WEBHOOK_REQUEST_ORIGIN_HEADER)
        if not origin:
            log.warning("subscription.handshake_rejected", reason="missing_origin", path=request.url.path)
            return _bad_request(f"Requires a '{WEBHOOK_REQUEST_ORIGIN_HEADER}' header")

        log.info("subscription.handshake_accepted", origin=origin, path=request.url.path)
        return Response(
            status_code=200,
            headers={
                WEBHOOK_ALLOWED_RATE_HEADER: "*",
                WEBHOOK_ALLOWED_ORIGIN_HEADER: origin,
            },
        )

    async def validate_subscription_event(self, request: Request) -> Response:
        """
        Echo the validation code of an Event Grid ``SubscriptionValidationEvent``.

        Returns:
            200 ``{"validationResponse": code}``, or 400 when the body is not
            exactly one event carrying a validation code
        """
        body = await request.body()
        try:
            batch = EventParser.parse(body)
        except (EventParsingError, ValueError) as exc:
            log.warning("subscription.validation_rejected", reason="unparseable", error=str(exc))
            return _bad_request(f"Cannot parse the subscription validation event: {exc}")

        if len(batch.events) != 1:
            log.warning("subscription.validation_rejected", reason="event_count", count=len(batch.events))
            return _bad_request("Requires exactly one subscription validation event")

        event = batch.events[0]
        try:
            data = event.get_payload(SubscriptionValidationEventData)
        except EventPayloadError as exc:
            log.warning("subscription.validation_rejected", reason="invalid_data", error=str(exc))
            return _bad_request("The subscription validation event data is not valid")

        if data is None or not data.validation_code:
            log.warning("subscription.validation_rejected", reason="missing_code", event_id=event.id)
            return _bad_request("The subscription validation event has no validation code")

        log.info("subscription.validated", event_id=event.id, topic=event.topic)
        payload = SubscriptionValidationResponse(validation_response=data.validation_code)
        return JSONResponse(status_code=200, content=payload.model_dump(by_alias=True))


class SubscriptionValidationMiddleware(BaseHTTPMiddleware):
    """
    Answers Event Grid validation requests on webhook paths.

    ``OPTIONS`` requests get the CloudEvents handshake, requests with
    ``Aeg-Event-Type: SubscriptionValidation`` get the validation code echoed
    back; everything else continues to the application. When an
    ``authorization`` callable is given it runs first, and an
    ``HTTPException`` it raises is returned as the response.
    """

    def __init__(
        self,
        app,
        paths: Iterable[str],
        validator: EventGridSubscriptionValidator | None = None,
        authorization: Callable[[Request], Awaitable[str]] | None = None,
    ):
        super().__init__(app)
        self.paths = {path.rstrip("/") or "/" for path in paths}
        self.validator = validator or EventGridSubscriptionValidator()
        self.authorization = authorization

    def _is_webhook_path(self, request: Request) -> bool:
        return (request.url.path.rstrip("/") or "/") in self.paths

    async def dispatch(self, request: Request, call_next):
        if not self._is_webhook_path(request):
            return await call_next(request)

        is_handshake = request.method == "OPTIONS"
        is_validation = (
            request.headers.get(AEG_EVENT_TYPE_HEADER, "").lower() == SUBSCRIPTION_VALIDATION_EVENT_TYPE.lower()
        )
        if not is_handshake and not is_validation:
            return await call_next(request)

        if self.authorization is not None:
            try:
                await self.authorization(request)
            except HTTPException as exc:
                return JSONResponse(
                    status_code=exc.status_code,
                    content={"error": "Unauthorized", "message": exc.detail},
                    headers=exc.headers,
                )

        if is_handshake:
            return self.validator.validate_cloud_events_handshake(request)
        return await self.validator.validate_subscription_event(request)

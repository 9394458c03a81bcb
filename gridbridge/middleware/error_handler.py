"""Structured error response middleware."""
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

from ..errors import (
    CircuitOpenError,
    EventParsingError,
    EventPayloadError,
    EventPublishingError,
    GridBridgeError,
    SecretNotFoundError,
)
from .correlation import get_correlation_id

log = structlog.get_logger()

# Most specific first: the parsing errors are ValueErrors, SecretNotFoundError a KeyError
DOMAIN_ERROR_STATUS: list[tuple[type[GridBridgeError], int, str]] = [
    (EventParsingError, 400, "The request does not carry valid events"),
    (EventPayloadError, 400, "The event data does not have the expected shape"),
    (CircuitOpenError, 503, "Event Grid publishing is temporarily suspended"),
    (EventPublishingError, 502, "Publishing to Event Grid failed"),
    (SecretNotFoundError, 500, "A required secret is not configured"),
]


def status_for(exc: GridBridgeError) -> tuple[int, str]:
    """HTTP status and public message for a domain exception."""
    for error_type, status_code, message in DOMAIN_ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code, message
    return 500, "An unexpected error occurred"


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Turns exceptions escaping the app into structured JSON errors.

    GridBridge errors keep their exception name as the error code and map
    to a matching status (503 for an open circuit, 502 for failed
    publishing, 400 for unparseable events); anything else is a 500.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException as exc:
            log.warning(
                "http.exception",
                status_code=exc.status_code,
                detail=exc.detail,
                path=request.url.path,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.__class__.__name__,
                    "message": exc.detail,
                    "status_code": exc.status_code,
                    "correlation_id": get_correlation_id(),
                    "path": str(request.url.path)
                }
            )
        except GridBridgeError as exc:
            status_code, message = status_for(exc)
            log_method = log.error if status_code >= 500 else log.warning
            log_method(
                "domain.exception",
                error=str(exc),
                error_type=exc.__class__.__name__,
                status_code=status_code,
                path=request.url.path,
            )
            return JSONResponse(
                status_code=status_code,
                content={
                    "error": exc.__class__.__name__,
                    "message": message,
                    "status_code": status_code,
                    "correlation_id": get_correlation_id(),
                    "path": str(request.url.path)
                }
            )
        except Exception as exc:
            log.error(
                "unhandled.exception",
                error=str(exc),
                error_type=exc.__class__.__name__,
                path=request.url.path,
                exc_info=True
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "InternalServerError",
                    "message": "An unexpected error occurred",
                    "correlation_id": get_correlation_id(),
                    "path": str(request.url.path)
                }
            )

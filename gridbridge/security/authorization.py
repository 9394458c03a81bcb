"""Shared-secret authorization for inbound Event Grid webhook requests."""
import hmac
from enum import Flag

import structlog
from fastapi import HTTPException, Request

from .secrets import SecretProvider

log = structlog.get_logger()

EVENT_GRID_PRINCIPAL = "EventGrid"


class HttpRequestProperty(Flag):
    """Where in the request the shared secret is looked for."""
    HEADER = 1
    QUERY = 2

    @classmethod
    def parse(cls, value: str) -> "HttpRequestProperty":
        """
        Parse ``"header"``, ``"query"`` or a combination like ``"header,query"``.

        Raises:
            ValueError: If the value is blank or names an unknown location
        """
        if not value or not value.strip():
            raise ValueError("Requires a non-blank request property location")
        result = None
        for part in value.replace("|", ",").split(","):
            name = part.strip().upper()
            if not name:
                continue
            try:
                flag = cls[name]
            except KeyError:
                raise ValueError(
                    f"Unknown request property location '{part.strip()}', expected 'header' or 'query'"
                ) from None
            result = flag if result is None else result | flag
        if result is None:
            raise ValueError("Requires a non-blank request property location")
        return result


class EventGridAuthorization:
    """
    FastAPI dependency authorizing requests by a shared secret.

    The secret named ``secret_name`` is resolved through the secret provider
    on ``request.app.state.secret_provider`` and compared against the request
    header and/or query parameter named ``property_name``.

    Args:
        request_property: Header, query parameter, or both
        property_name: Name of the header/query parameter carrying the secret
        secret_name: Name of the secret to compare against
        emit_security_events: Log each authorization decision as a security event

    Raises:
        ValueError: If a name is blank or no request property is selected
    """

    def __init__(
        self,
        request_property: HttpRequestProperty,
        property_name: str,
        secret_name: str,
        emit_security_events: bool = False,
    ):
        if not request_property:
            raise ValueError("Requires at least one request property (header or query) to look for the secret")
        if not property_name or not property_name.strip():
            raise ValueError("Requires a non-blank request property name")
        if not secret_name or not secret_name.strip():
            raise ValueError("Requires a non-blank secret name")
        self.request_property = request_property
        self.property_name = property_name
        self.secret_name = secret_name
        self.emit_security_events = emit_security_events

    async def __call__(self, request: Request) -> str:
        secret_provider: SecretProvider | None = getattr(request.app.state, "secret_provider", None)
        if secret_provider is None:
            raise RuntimeError(
                "Cannot authorize Event Grid requests without a secret provider on 'app.state.secret_provider'"
            )

        header_values = request.headers.getlist(self.property_name)
        query_values = request.query_params.getlist(self.property_name)
        if not header_values and not query_values:
            self._deny(request, f"No '{self.property_name}' header or query parameter was found")

        secret = await secret_provider.get_raw_secret(self.secret_name)

        if HttpRequestProperty.HEADER in self.request_property:
            self._check_values(request, header_values, secret, "header")
        if HttpRequestProperty.QUERY in self.request_property:
            self._check_values(request, query_values, secret, "query parameter")

        self._log_security_event(request, authorized=True, description="Request is authorized")
        return EVENT_GRID_PRINCIPAL

    def _check_values(self, request: Request, values: list[str], secret: str, location: str):
        if not values:
            self._deny(request, f"No '{self.property_name}' {location} was found")
        for value in values:
            if not hmac.compare_digest(value.encode(), secret.encode()):
                self._deny(request, f"The '{self.property_name}' {location} does not match the expected secret")

    def _deny(self, request: Request, description: str):
        self._log_security_event(request, authorized=False, description=description)
        raise HTTPException(status_code=401, detail="Unauthorized")

    def _log_security_event(self, request: Request, authorized: bool, description: str):
        if not authorized:
            log.warning("auth.failed", reason=description, path=request.url.path)
        if self.emit_security_events:
            log.info(
                "security_event",
                security_event_type="Authorization",
                description=description,
                authorized=authorized,
                property_name=self.property_name,
                path=request.url.path,
            )

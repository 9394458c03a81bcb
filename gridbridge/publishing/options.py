"""Options controlling how the Event Grid publisher sends and tracks events."""
import uuid
from datetime import timedelta
from typing import Any, Callable

from azure.core.exceptions import HttpResponseError, ServiceRequestError, ServiceResponseError

from .resilience import CircuitBreakerPolicy, NoOpPolicy, Policy, PolicyWrap, RetryPolicy

# Transport failures and non-success responses from the topic endpoint
DEFAULT_TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ServiceRequestError,
    ServiceResponseError,
    HttpResponseError,
)


def _require_name(value: str, what: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"Requires a non-blank {what}")
    return value


class PublisherOptions:
    """
    Publisher configuration: dependency tracking and resilience.

    Dependency tracking stamps every outgoing event body with a generated
    dependency id (under ``upstream_service_property_name``) and the current
    transaction id (under ``transaction_id_property_name``).
    """

    def __init__(
        self,
        enable_dependency_tracking: bool = True,
        transaction_id_property_name: str = "transactionId",
        upstream_service_property_name: str = "operationParentId",
        generate_dependency_id: Callable[[], str] | None = None,
        telemetry_context: dict[str, Any] | None = None,
    ):
        self.enable_dependency_tracking = enable_dependency_tracking
        self.transaction_id_property_name = transaction_id_property_name
        self.upstream_service_property_name = upstream_service_property_name
        self.generate_dependency_id = generate_dependency_id or (lambda: str(uuid.uuid4()))
        self.telemetry_context = dict(telemetry_context or {})
        self._retry: RetryPolicy | None = None
        self._circuit_breaker: CircuitBreakerPolicy | None = None

    @property
    def transaction_id_property_name(self) -> str:
        return self._transaction_id_property_name

    @transaction_id_property_name.setter
    def transaction_id_property_name(self, value: str):
        self._transaction_id_property_name = _require_name(value, "transaction ID property name")

    @property
    def upstream_service_property_name(self) -> str:
        return self._upstream_service_property_name

    @upstream_service_property_name.setter
    def upstream_service_property_name(self, value: str):
        self._upstream_service_property_name = _require_name(value, "upstream service property name")

    @property
    def generate_dependency_id(self) -> Callable[[], str]:
        return self._generate_dependency_id

    @generate_dependency_id.setter
    def generate_dependency_id(self, value: Callable[[], str]):
        if not callable(value):
            raise ValueError("Requires a callable to generate dependency IDs")
        self._generate_dependency_id = value

    def add_telemetry_context(self, **context: Any) -> "PublisherOptions":
        """Add entries to every dependency log entry."""
        self.telemetry_context.update(context)
        return self

    def with_exponential_retry(
        self,
        retry_count: int,
        exceptions: tuple[type[BaseException], ...] = DEFAULT_TRANSIENT_EXCEPTIONS,
        backoff_base: float = 2.0,
    ) -> "PublisherOptions":
        """
        Retry failed publishes, waiting ``backoff_base ** attempt`` seconds in between.

        Raises:
            ValueError: If ``retry_count`` is not positive
        """
        self._retry = RetryPolicy(retry_count=retry_count, exceptions=exceptions, backoff_base=backoff_base)
        return self

    def with_circuit_breaker(
        self,
        exceptions_allowed: int,
        break_duration: float | timedelta,
        exceptions: tuple[type[BaseException], ...] = DEFAULT_TRANSIENT_EXCEPTIONS,
    ) -> "PublisherOptions":
        """
        Stop publishing for ``break_duration`` after ``exceptions_allowed``
        consecutive failures.

        Raises:
            ValueError: If either value is not positive
        """
        if isinstance(break_duration, timedelta):
            break_duration = break_duration.total_seconds()
        self._circuit_breaker = CircuitBreakerPolicy(
            exceptions_allowed=exceptions_allowed,
            break_duration_s=break_duration,
            exceptions=exceptions,
        )
        return self

    @property
    def circuit_breaker(self) -> CircuitBreakerPolicy | None:
        return self._circuit_breaker

    @property
    def policy(self) -> Policy:
        """The configured policies; retries run outside the circuit breaker."""
        if self._retry and self._circuit_breaker:
            return PolicyWrap(outer=self._retry, inner=self._circuit_breaker)
        return self._retry or self._circuit_breaker or NoOpPolicy()

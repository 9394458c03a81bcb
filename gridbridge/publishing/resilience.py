"""
Resilience policies for outbound calls: retries and circuit breaking.

Every policy exposes ``await policy.execute(fn)`` where ``fn`` is a
zero-argument coroutine function. Policies compose with ``PolicyWrap``.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, TypeVar

import structlog

from ..errors import CircuitOpenError

log = structlog.get_logger()

T = TypeVar("T")
Operation = Callable[[], Awaitable[T]]


class Policy(ABC):
    @abstractmethod
    async def execute(self, operation: Operation) -> T:
        """Run ``operation`` under this policy."""
        raise NotImplementedError


class NoOpPolicy(Policy):
    """Runs the operation once, as is."""

    async def execute(self, operation: Operation) -> T:
        return await operation()


@dataclass
class RetryPolicy(Policy):
    """
    Retries handled exceptions with exponential back-off.

    The wait before retry ``n`` (1-based) is ``backoff_base ** n`` seconds,
    capped at ``max_delay_s``. A rejection by an open circuit breaker is
    never retried.
    """
    retry_count: int
    exceptions: tuple[type[BaseException], ...] = (Exception,)
    backoff_base: float = 2.0
    max_delay_s: float = 60.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self):
        if self.retry_count <= 0:
            raise ValueError("Requires a retry count greater than zero")
        if self.backoff_base <= 0:
            raise ValueError("Requires a back-off base greater than zero")
        self.exceptions = tuple(self.exceptions)

    def compute_backoff_s(self, attempt: int) -> float:
        """
        attempt: 1..retry_count
        """
        return min(self.backoff_base ** attempt, self.max_delay_s)

    async def execute(self, operation: Operation) -> T:
        attempt = 0
        while True:
            try:
                return await operation()
            except CircuitOpenError:
                raise
            except self.exceptions as exc:
                attempt += 1
                if attempt > self.retry_count:
                    raise
                delay = self.compute_backoff_s(attempt)
                log.warning(
                    "policy.retry",
                    attempt=attempt,
                    retry_count=self.retry_count,
                    delay_s=delay,
                    error=type(exc).__name__,
                )
                await self.sleep(delay)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerPolicy(Policy):
    """
    Breaks the circuit after a number of consecutive handled failures.

    While open, calls fail fast with ``CircuitOpenError``. Once the break
    duration elapses a single trial call is let through (half-open): success
    closes the circuit, a handled failure opens it again.

    Args:
        exceptions_allowed: Consecutive handled failures before breaking
        break_duration_s: Seconds the circuit stays open
        exceptions: Exception types counted as failures
        clock: Monotonic time source
    """

    def __init__(
        self,
        exceptions_allowed: int,
        break_duration_s: float,
        exceptions: tuple[type[BaseException], ...] = (Exception,),
        clock: Callable[[], float] = time.monotonic,
    ):
        if exceptions_allowed <= 0:
            raise ValueError("Requires an allowed exception count greater than zero")
        if break_duration_s <= 0:
            raise ValueError("Requires a break duration greater than zero")
        self.exceptions_allowed = exceptions_allowed
        self.break_duration_s = break_duration_s
        self.exceptions = tuple(exceptions)
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        if self._state is CircuitState.OPEN and self._break_elapsed():
            return CircuitState.HALF_OPEN
        return self._state

    def _break_elapsed(self) -> bool:
        return self._clock() - self._opened_at >= self.break_duration_s

    def _open(self):
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._trial_in_flight = False
        log.warning(
            "policy.circuit_opened",
            failures=self._failures,
            break_duration_s=self.break_duration_s,
        )

    def _close(self):
        if self._state is not CircuitState.CLOSED:
            log.info("policy.circuit_closed")
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._trial_in_flight = False

    def _admit(self):
        if self._state is CircuitState.CLOSED:
            return
        if self._state is CircuitState.OPEN:
            if not self._break_elapsed():
                raise CircuitOpenError("The circuit is open, the call was not attempted")
            self._state = CircuitState.HALF_OPEN
        if self._trial_in_flight:
            raise CircuitOpenError("The circuit is half-open and a trial call is in flight")
        self._trial_in_flight = True

    def reset(self):
        self._close()

    async def execute(self, operation: Operation) -> T:
        self._admit()
        try:
            result = await operation()
        except self.exceptions:
            if self._state is CircuitState.HALF_OPEN:
                self._open()
            else:
                self._failures += 1
                if self._failures >= self.exceptions_allowed:
                    self._open()
            raise
        except BaseException:
            # Unhandled failures neither count nor keep the trial slot
            self._trial_in_flight = False
            raise
        self._close()
        return result


class PolicyWrap(Policy):
    """Runs ``inner`` inside ``outer``."""

    def __init__(self, outer: Policy, inner: Policy):
        self.outer = outer
        self.inner = inner

    async def execute(self, operation: Operation) -> T:
        return await self.outer.execute(lambda: self.inner.execute(operation))

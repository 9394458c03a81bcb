"""Tests for retry and circuit-breaker policies."""
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from gridbridge.errors import CircuitOpenError
from gridbridge.publishing import (
    CircuitBreakerPolicy,
    CircuitState,
    NoOpPolicy,
    PolicyWrap,
    PublisherOptions,
    RetryPolicy,
)


class TransientError(Exception):
    pass


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def failing(times: int, result="ok"):
    """Operation failing with TransientError ``times`` times, then succeeding."""
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if calls["count"] <= times:
            raise TransientError(f"failure {calls['count']}")
        return result

    return operation, calls


@pytest.mark.asyncio
async def test_retry_backs_off_exponentially_until_success():
    sleep = AsyncMock()
    policy = RetryPolicy(retry_count=3, exceptions=(TransientError,), sleep=sleep)
    operation, calls = failing(2)

    assert await policy.execute(operation) == "ok"

    assert calls["count"] == 3
    assert [c.args[0] for c in sleep.await_args_list] == [2.0, 4.0]


@pytest.mark.asyncio
async def test_retry_gives_up_after_retry_count():
    sleep = AsyncMock()
    policy = RetryPolicy(retry_count=2, exceptions=(TransientError,), sleep=sleep)
    operation, calls = failing(5)

    with pytest.raises(TransientError):
        await policy.execute(operation)

    assert calls["count"] == 3
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_retry_ignores_unhandled_exceptions():
    sleep = AsyncMock()
    policy = RetryPolicy(retry_count=3, exceptions=(TransientError,), sleep=sleep)

    async def operation():
        raise KeyError("not transient")

    with pytest.raises(KeyError):
        await policy.execute(operation)
    sleep.assert_not_awaited()


def test_retry_requires_positive_count():
    with pytest.raises(ValueError):
        RetryPolicy(retry_count=0)


def test_retry_delay_is_capped():
    policy = RetryPolicy(retry_count=10, max_delay_s=30.0)

    assert policy.compute_backoff_s(1) == 2.0
    assert policy.compute_backoff_s(10) == 30.0


@pytest.mark.asyncio
async def test_circuit_opens_after_consecutive_failures():
    clock = FakeClock()
    breaker = CircuitBreakerPolicy(2, break_duration_s=30, exceptions=(TransientError,), clock=clock)
    operation, calls = failing(10)

    for _ in range(2):
        with pytest.raises(TransientError):
            await breaker.execute(operation)

    assert breaker.state is CircuitState.OPEN
    with pytest.raises(CircuitOpenError):
        await breaker.execute(operation)
    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_success_resets_failure_count():
    breaker = CircuitBreakerPolicy(2, break_duration_s=30, exceptions=(TransientError,), clock=FakeClock())
    operation, _ = failing(1)

    with pytest.raises(TransientError):
        await breaker.execute(operation)
    assert await breaker.execute(operation) == "ok"

    assert breaker.state is CircuitState.CLOSED


@pytest.mark.asyncio
async def test_half_open_trial_closes_or_reopens_the_circuit():
    clock = FakeClock()
    breaker = CircuitBreakerPolicy(1, break_duration_s=30, exceptions=(TransientError,), clock=clock)
    operation, _ = failing(2)

    with pytest.raises(TransientError):
        await breaker.execute(operation)
    clock.now += 31
    assert breaker.state is CircuitState.HALF_OPEN

    # Failed trial opens the circuit again
    with pytest.raises(TransientError):
        await breaker.execute(operation)
    assert breaker.state is CircuitState.OPEN
    with pytest.raises(CircuitOpenError):
        await breaker.execute(operation)

    clock.now += 31
    assert await breaker.execute(operation) == "ok"
    assert breaker.state is CircuitState.CLOSED


def test_circuit_breaker_requires_positive_settings():
    with pytest.raises(ValueError):
        CircuitBreakerPolicy(0, break_duration_s=30)
    with pytest.raises(ValueError):
        CircuitBreakerPolicy(1, break_duration_s=0)


@pytest.mark.asyncio
async def test_retry_wraps_circuit_breaker_and_stops_when_open():
    """Test retries run outside the breaker and an open circuit is not retried."""
    sleep = AsyncMock()
    retry = RetryPolicy(retry_count=3, exceptions=(TransientError,), sleep=sleep)
    breaker = CircuitBreakerPolicy(2, break_duration_s=30, exceptions=(TransientError,), clock=FakeClock())
    operation, calls = failing(10)

    with pytest.raises(CircuitOpenError):
        await PolicyWrap(outer=retry, inner=breaker).execute(operation)

    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_noop_policy_runs_once():
    operation, calls = failing(0)

    assert await NoOpPolicy().execute(operation) == "ok"
    assert calls["count"] == 1


def test_publisher_options_defaults():
    options = PublisherOptions()

    assert options.enable_dependency_tracking is True
    assert options.transaction_id_property_name == "transactionId"
    assert options.upstream_service_property_name == "operationParentId"
    assert options.generate_dependency_id() != options.generate_dependency_id()
    assert isinstance(options.policy, NoOpPolicy)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"transaction_id_property_name": " "},
        {"upstream_service_property_name": ""},
        {"generate_dependency_id": "not-callable"},
    ],
)
def test_publisher_options_reject_invalid_values(kwargs):
    with pytest.raises(ValueError):
        PublisherOptions(**kwargs)


def test_publisher_options_compose_policies():
    options = PublisherOptions().with_circuit_breaker(3, timedelta(seconds=10)).with_exponential_retry(2)

    policy = options.policy

    assert isinstance(policy, PolicyWrap)
    assert isinstance(policy.outer, RetryPolicy)
    assert isinstance(policy.inner, CircuitBreakerPolicy)
    assert policy.inner.break_duration_s == 10
    assert isinstance(PublisherOptions().with_exponential_retry(1).policy, RetryPolicy)


def test_publisher_options_reject_invalid_policies():
    with pytest.raises(ValueError):
        PublisherOptions().with_exponential_retry(0)
    with pytest.raises(ValueError):
        PublisherOptions().with_circuit_breaker(0, 10)


def test_telemetry_context_is_merged():
    options = PublisherOptions(telemetry_context={"component": "cars"}).add_telemetry_context(region="eu")

    assert options.telemetry_context == {"component": "cars", "region": "eu"}

"""
Outbound publishing to Event Grid topics
"""

from .options import DEFAULT_TRANSIENT_EXCEPTIONS, PublisherOptions
from .publisher import EventGridPublisher
from .resilience import CircuitBreakerPolicy, CircuitState, NoOpPolicy, Policy, PolicyWrap, RetryPolicy

__all__ = [
    "DEFAULT_TRANSIENT_EXCEPTIONS",
    "PublisherOptions",
    "EventGridPublisher",
    "CircuitBreakerPolicy",
    "CircuitState",
    "NoOpPolicy",
    "Policy",
    "PolicyWrap",
    "RetryPolicy",
]

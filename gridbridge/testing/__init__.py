"""
Helpers for integration tests against Event Grid consumers
"""

from .consumer_host import ConsumerHost, EventConsumerHost, StoreEventConsumerHost

__all__ = ["ConsumerHost", "EventConsumerHost", "StoreEventConsumerHost"]

"""
Inbound webhook security

- Secret providers (in-memory, environment, Azure Key Vault, cached)
- Shared-secret authorization of Event Grid deliveries
- Subscription validation handshakes
"""

from .authorization import EVENT_GRID_PRINCIPAL, EventGridAuthorization, HttpRequestProperty
from .secrets import (
    CachedSecretProvider,
    EnvironmentSecretProvider,
    InMemorySecretProvider,
    KeyVaultSecretProvider,
    SecretProvider,
    create_default_secret_provider,
)
from .validation import EventGridSubscriptionValidator, SubscriptionValidationMiddleware

__all__ = [
    "EVENT_GRID_PRINCIPAL",
    "EventGridAuthorization",
    "HttpRequestProperty",
    "CachedSecretProvider",
    "EnvironmentSecretProvider",
    "InMemorySecretProvider",
    "KeyVaultSecretProvider",
    "SecretProvider",
    "create_default_secret_provider",
    "EventGridSubscriptionValidator",
    "SubscriptionValidationMiddleware",
]

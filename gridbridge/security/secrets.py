"""Secret providers used to resolve webhook keys and topic access keys."""
import asyncio
import os
import time
from abc import ABC, abstractmethod

import structlog
from azure.core.exceptions import ResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential
from azure.keyvault.secrets.aio import SecretClient

from ..errors import SecretNotFoundError

log = structlog.get_logger()


def _require_secret_name(name: str):
    if not name or not name.strip():
        raise ValueError("Requires a non-blank secret name")


class SecretProvider(ABC):
    """Resolves secret values by name."""

    @abstractmethod
    async def get_raw_secret(self, name: str) -> str:
        """
        Get the value of a secret.

        Args:
            name: Secret name

        Returns:
            The secret value

        Raises:
            ValueError: If the name is blank
            SecretNotFoundError: If no secret exists with that name
        """
        pass

    async def close(self):
        """Release any resources held by the provider."""
        return None


class InMemorySecretProvider(SecretProvider):
    """Secrets held in a dictionary; for tests and local development."""

    def __init__(self, secrets: dict[str, str] | None = None, **named_secrets: str):
        self._secrets = {**(secrets or {}), **named_secrets}

    @classmethod
    def from_pairs(cls, pairs: str) -> "InMemorySecretProvider":
        """
        Build from comma-separated ``name=value`` pairs.

        Raises:
            ValueError: If a pair has no ``=`` or a blank name
        """
        secrets = {}
        for pair in pairs.split(","):
            if not pair.strip():
                continue
            name, sep, value = pair.partition("=")
            if not sep or not name.strip():
                raise ValueError(f"Invalid secret pair '{pair.strip()}', expected 'name=value'")
            secrets[name.strip()] = value.strip()
        return cls(secrets)

    async def get_raw_secret(self, name: str) -> str:
        _require_secret_name(name)
        try:
            return self._secrets[name]
        except KeyError:
            raise SecretNotFoundError(name) from None


class EnvironmentSecretProvider(SecretProvider):
    """
    Secrets read from environment variables.

    ``eventgrid-webhook-key`` is looked up as ``EVENTGRID_WEBHOOK_KEY``
    (prefixed with ``prefix`` when given).
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def _variable_name(self, name: str) -> str:
        return self.prefix + name.replace("-", "_").replace(".", "_").upper()

    async def get_raw_secret(self, name: str) -> str:
        _require_secret_name(name)
        value = os.environ.get(self._variable_name(name))
        if value is None:
            raise SecretNotFoundError(name)
        return value


class KeyVaultSecretProvider(SecretProvider):
    """
    Secrets stored in Azure Key Vault.

    Authenticates with ``DefaultAzureCredential`` (managed identity, Azure
    CLI, environment variables) unless a credential is passed in.
    """

    def __init__(self, vault_url: str, credential=None, client: SecretClient | None = None):
        if not vault_url or not vault_url.strip():
            raise ValueError("Requires a non-blank Key Vault URL")
        self.vault_url = vault_url
        self._credential = credential
        self._owns_credential = credential is None and client is None
        self._client = client

    def _get_client(self) -> SecretClient:
        if self._client is None:
            if self._credential is None:
                self._credential = DefaultAzureCredential()
            self._client = SecretClient(vault_url=self.vault_url, credential=self._credential)
        return self._client

    async def get_raw_secret(self, name: str) -> str:
        _require_secret_name(name)
        try:
            secret = await self._get_client().get_secret(name)
        except ResourceNotFoundError:
            raise SecretNotFoundError(name) from None
        log.debug("secret.fetched", vault=self.vault_url, secret=name)
        if secret.value is None:
            raise SecretNotFoundError(name)
        return secret.value

    async def close(self):
        if self._client is not None:
            await self._client.close()
        if self._owns_credential and self._credential is not None:
            await self._credential.close()


class CachedSecretProvider(SecretProvider):
    """
    Caches another provider's secrets for a fixed duration.

    Misses are not cached.
    """

    def __init__(self, inner: SecretProvider, ttl_seconds: float = 300.0, clock=time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("Requires a cache duration greater than zero")
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: dict[str, tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    async def get_raw_secret(self, name: str) -> str:
        _require_secret_name(name)
        cached = self._cache.get(name)
        if cached is not None and cached[1] > self._clock():
            return cached[0]
        async with self._lock:
            cached = self._cache.get(name)
            if cached is not None and cached[1] > self._clock():
                return cached[0]
            value = await self.inner.get_raw_secret(name)
            self._cache[name] = (value, self._clock() + self.ttl_seconds)
            return value

    def invalidate(self, name: str | None = None):
        """Drop one cached secret, or all of them."""
        if name is None:
            self._cache.clear()
        else:
            self._cache.pop(name, None)

    async def close(self):
        await self.inner.close()


def create_default_secret_provider(settings) -> SecretProvider:
    """
    Create the secret provider based on configuration.

    Key Vault when ``KEY_VAULT_URL`` is set, else the ``SECRETS`` pairs when
    given, else environment variables. Remote lookups are cached for
    ``SECRET_CACHE_SECONDS``.
    """
    if settings.KEY_VAULT_URL:
        log.info("secret_provider.selected", type="key_vault", vault=settings.KEY_VAULT_URL)
        return CachedSecretProvider(
            KeyVaultSecretProvider(settings.KEY_VAULT_URL),
            ttl_seconds=settings.SECRET_CACHE_SECONDS,
        )
    if settings.SECRETS.strip():
        log.info("secret_provider.selected", type="memory")
        return InMemorySecretProvider.from_pairs(settings.SECRETS)
    log.info("secret_provider.selected", type="environment")
    return EnvironmentSecretProvider()

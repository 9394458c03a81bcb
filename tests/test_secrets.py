"""Tests for secret providers."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.core.exceptions import ResourceNotFoundError

from gridbridge.config import Settings
from gridbridge.errors import SecretNotFoundError
from gridbridge.security import (
    CachedSecretProvider,
    EnvironmentSecretProvider,
    InMemorySecretProvider,
    KeyVaultSecretProvider,
    create_default_secret_provider,
)


@pytest.mark.asyncio
async def test_in_memory_provider_returns_secrets():
    provider = InMemorySecretProvider({"topic-key": "s3cr3t"}, other="value")

    assert await provider.get_raw_secret("topic-key") == "s3cr3t"
    assert await provider.get_raw_secret("other") == "value"


@pytest.mark.asyncio
async def test_missing_secret_raises_secret_not_found():
    provider = InMemorySecretProvider()

    with pytest.raises(SecretNotFoundError) as exc_info:
        await provider.get_raw_secret("unknown")

    assert exc_info.value.secret_name == "unknown"
    assert "unknown" in str(exc_info.value)
    assert isinstance(exc_info.value, KeyError)


@pytest.mark.asyncio
async def test_blank_secret_name_is_rejected():
    with pytest.raises(ValueError):
        await InMemorySecretProvider().get_raw_secret(" ")


@pytest.mark.asyncio
async def test_in_memory_provider_from_pairs():
    provider = InMemorySecretProvider.from_pairs("webhook-key = abc, topic-key=x=y,")

    assert await provider.get_raw_secret("webhook-key") == "abc"
    assert await provider.get_raw_secret("topic-key") == "x=y"

    with pytest.raises(ValueError):
        InMemorySecretProvider.from_pairs("no-separator")


@pytest.mark.asyncio
async def test_environment_provider(monkeypatch):
    monkeypatch.setenv("GRID_EVENTGRID_WEBHOOK_KEY", "from-env")
    provider = EnvironmentSecretProvider(prefix="GRID_")

    assert await provider.get_raw_secret("eventgrid-webhook-key") == "from-env"
    with pytest.raises(SecretNotFoundError):
        await provider.get_raw_secret("missing-secret")


@pytest.mark.asyncio
async def test_key_vault_provider_reads_secret():
    client = MagicMock()
    client.get_secret = AsyncMock(return_value=SimpleNamespace(value="vault-value"))
    provider = KeyVaultSecretProvider("https://grid-vault.vault.azure.net", client=client)

    assert await provider.get_raw_secret("topic-key") == "vault-value"
    client.get_secret.assert_awaited_once_with("topic-key")


@pytest.mark.asyncio
async def test_key_vault_provider_maps_not_found():
    client = MagicMock()
    client.get_secret = AsyncMock(side_effect=ResourceNotFoundError(message="not found"))
    provider = KeyVaultSecretProvider("https://grid-vault.vault.azure.net", client=client)

    with pytest.raises(SecretNotFoundError):
        await provider.get_raw_secret("topic-key")


@pytest.mark.asyncio
async def test_cached_provider_caches_until_expiry():
    now = {"value": 0.0}
    inner = InMemorySecretProvider({"topic-key": "first"})
    inner.get_raw_secret = AsyncMock(side_effect=["first", "second"])
    provider = CachedSecretProvider(inner, ttl_seconds=60, clock=lambda: now["value"])

    assert await provider.get_raw_secret("topic-key") == "first"
    now["value"] = 59
    assert await provider.get_raw_secret("topic-key") == "first"
    now["value"] = 61
    assert await provider.get_raw_secret("topic-key") == "second"
    assert inner.get_raw_secret.await_count == 2


@pytest.mark.asyncio
async def test_cached_provider_invalidate():
    inner = InMemorySecretProvider({"topic-key": "value"})
    inner.get_raw_secret = AsyncMock(return_value="value")
    provider = CachedSecretProvider(inner, ttl_seconds=60)

    await provider.get_raw_secret("topic-key")
    provider.invalidate("topic-key")
    await provider.get_raw_secret("topic-key")

    assert inner.get_raw_secret.await_count == 2


def test_default_provider_selection():
    assert isinstance(create_default_secret_provider(Settings(SECRETS="a=b")), InMemorySecretProvider)
    assert isinstance(create_default_secret_provider(Settings(SECRETS="")), EnvironmentSecretProvider)
    assert isinstance(
        create_default_secret_provider(Settings(KEY_VAULT_URL="https://grid-vault.vault.azure.net")),
        CachedSecretProvider,
    )

from pydantic import AnyUrl
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    MAX_EVENT_SIZE: int = 1048576  # Event Grid caps a delivered batch at 1 MB
    LOG_JSON: bool = True
    # Received-event store: "memory" or "redis"
    STORE_ADAPTER: Literal["memory", "redis"] = "memory"
    REDIS_URL: AnyUrl | None = None
    # Webhook authorization
    REQUIRE_AUTH: bool = False
    AUTH_PROPERTY_NAME: str = "x-api-key"
    AUTH_PROPERTY_LOCATION: str = "header"  # "header", "query" or "header,query"
    AUTH_SECRET_NAME: str = "eventgrid-webhook-key"
    EMIT_SECURITY_EVENTS: bool = False
    # Secrets: Key Vault when configured, else "name=value" pairs, else environment
    KEY_VAULT_URL: str | None = None
    SECRETS: str = ""
    SECRET_CACHE_SECONDS: int = 300
    # Outbound publishing
    EVENTGRID_TOPIC_ENDPOINT: str | None = None
    EVENTGRID_TOPIC_KEY_SECRET_NAME: str | None = None
    PUBLISH_RETRY_COUNT: int = 0
    PUBLISH_CIRCUIT_BREAKER_EXCEPTIONS: int = 0
    PUBLISH_CIRCUIT_BREAKER_SECONDS: float = 30.0
    CLOUD_EVENT_SOURCE: str = "/gridbridge"

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

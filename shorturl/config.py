"""Configuration management for the URL shortener service.

All service settings come from environment variables (or a local ``.env``)
through Pydantic BaseSettings, and are read once per process.

Flow Diagram — BASE_URL resolution
==================================
::
    BASE_URL set?
        │
    ┌───┴────────┐
    │ yes        │ no
    ▼            ▼
  strip "/"   "http://{SERVER_ADDRESS}"
    │         + warning logged
    └─────┬──────┘
          ▼
    short_url_for(code) ──► "{BASE_URL}/{code}"

How to Use
===========
**Step 1 — Import**::
    from shorturl.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3 — Build absolute short links**::
    settings.short_url_for("4ER7dq2Z")  # "http://localhost:8080/4ER7dq2Z"

Key Behaviours
===============
- ``get_settings()`` is lru-cached; tests build ``Settings(...)`` directly.
- Environment variables override defaults; names are case sensitive.
- BASE_URL falls back to ``http://{SERVER_ADDRESS}`` with a warning.
- An empty REDIS_URL disables the fast cache; lookups go straight to PostgreSQL.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("shorturl")


class Settings(BaseSettings):
    APP_NAME: str = "shorturl"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # HTTP
    SERVER_ADDRESS: str = "0.0.0.0:8080"
    BASE_URL: str = ""

    # PostgreSQL (authoritative store)
    DATABASE_URL: str = "postgresql+asyncpg://shorturl:shorturl@db:5432/shorturl"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10
    STORE_TIMEOUT_SECONDS: float = 5.0
    AUTO_CREATE_SCHEMA: bool = True

    # Redis (fast cache); empty disables caching
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_TTL_SECONDS: int = 3600
    CACHE_KEY_PREFIX: str = "url"
    CACHE_TIMEOUT_SECONDS: float = 0.5

    # Admission gate
    RATE_LIMIT_REQUESTS: int = 200
    RATE_LIMIT_PERIOD_SECONDS: float = 1.0
    RATE_LIMIT_QUEUE_SIZE: int = 1024
    RATE_LIMIT_WAIT_SECONDS: float = 30.0

    METRICS_ENABLED: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _default_base_url(self) -> "Settings":
        if not self.BASE_URL:
            self.BASE_URL = f"http://{self.SERVER_ADDRESS}"
            logger.warning(f"BASE_URL not set, using default: {self.BASE_URL}")
        self.BASE_URL = self.BASE_URL.rstrip("/")
        return self

    @property
    def cache_enabled(self) -> bool:
        return bool(self.REDIS_URL)

    @property
    def bind_host(self) -> str:
        host, _, _ = self.SERVER_ADDRESS.rpartition(":")
        return host or "0.0.0.0"

    @property
    def bind_port(self) -> int:
        _, _, port = self.SERVER_ADDRESS.rpartition(":")
        return int(port)

    def short_url_for(self, short_code: str) -> str:
        return f"{self.BASE_URL}/{short_code}"


@lru_cache()
def get_settings() -> Settings:
    return Settings()

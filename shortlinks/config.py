"""Configuration management for the short-links service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram: get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1: Import**::
    from shortlinks.config import get_settings

**Step 2: Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3: Override in tests**::
    settings = Settings(SHORT_PATH_LENGTH=6, SWEEP_INTERVAL_SECONDS=0)

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- ``CREATE_MAX_ATTEMPTS`` bounds the random short path collision retries.
- ``SWEEP_INTERVAL_SECONDS=0`` disables the in-process sweep timer.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "short-links"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # Durable record store
    DATABASE_URL: str = "postgresql+asyncpg://shortlinks:shortlinks@db:5432/shortlinks"
    DATABASE_ECHO: bool = False

    # Cache
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_KEY_PREFIX: str = "short"

    # Short path config
    SHORT_PATH_LENGTH: int = 4
    SHORT_PATH_ALPHABET: str = "abcdefghijklmnopqrstuvwxyz0123456789"
    CREATE_MAX_ATTEMPTS: int = 6

    # Expiration defaults
    DEFAULT_EXPIRATION: str = "forever"
    SHARE_LINK_DEFAULT_EXPIRATION: str = "7d"

    # Expired record sweep
    SWEEP_INTERVAL_SECONDS: int = 300
    SWEEP_ON_REQUEST: bool = True
    PURGE_ON_STARTUP: bool = False

    # Comma separated list, "*" allows any origin
    ALLOWED_ORIGINS: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()

"""Library configuration (settings and environment).

Single source of truth for configuration. Uses pydantic-settings with
.env support. Nothing is required: an empty DATABASE_URL only matters
to callers of get_db, and the default cache backend is in-process.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CACHE_BACKENDS = ("memory", "redis")


class Settings(BaseSettings):
    """Settings loaded from environment and .env."""

    app_name: str = "cachedrepo"
    debug: bool = False

    # Database (SQLAlchemy async URL, e.g. postgresql+asyncpg://... or sqlite+aiosqlite://)
    database_url: str = ""
    database_echo: bool = False

    # Cache store: "memory" (per process) or "redis"
    cache_backend: str = "memory"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    # Prepended to every key written by RedisCacheStore; also scopes flush().
    redis_key_prefix: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_cache_backend(self) -> "Settings":
        """Reject unknown cache backends at load time."""
        if self.cache_backend not in CACHE_BACKENDS:
            raise ValueError(
                f"cache_backend must be one of {', '.join(CACHE_BACKENDS)}, "
                f"got: {self.cache_backend!r}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    In tests, call get_settings.cache_clear() before overriding env vars
    so the next get_settings() uses the new values.
    """
    return Settings()

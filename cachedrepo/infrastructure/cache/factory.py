"""Build the cache store selected by settings."""

from __future__ import annotations

from cachedrepo.core.config import Settings, get_settings
from cachedrepo.infrastructure.cache.cache_protocol import CacheProtocol
from cachedrepo.infrastructure.cache.memory_cache import MemoryCacheStore
from cachedrepo.infrastructure.cache.redis_cache import RedisCacheStore


def get_cache_store(settings: Settings | None = None) -> CacheProtocol:
    """Return a new store for settings.cache_backend.

    A RedisCacheStore is returned unconnected; await its connect() at startup.
    """
    settings = settings or get_settings()
    if settings.cache_backend == "redis":
        return RedisCacheStore(settings=settings)
    return MemoryCacheStore()

"""Redis-backed cache store.

Values are JSON so entities cached by one process can be read by any
other. Connection and timeout errors get one reconnect attempt; after
that the operation degrades to a miss (reads) or a no-op (writes) and
is logged, so a Redis outage never fails a repository call.
"""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis

from cachedrepo.core.config import Settings, get_settings
from cachedrepo.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_UNLINK_CHUNK_SIZE = 500


class RedisCacheStore:
    """Async Redis cache store with store-forever semantics.

    Uses cachedrepo.core.config for connection settings. Call connect()
    at startup and disconnect() at shutdown.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            redis_client: Optional Redis client for testing or DI. A client
                passed here is treated as already connected.
            settings: Optional settings; defaults to get_settings().
        """
        self.redis = redis_client
        self.settings = settings or get_settings()
        self.key_prefix = self.settings.redis_key_prefix
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on startup."""
        if self.redis is None:
            password = self.settings.redis_password
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=password.get_secret_value() if password else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_keepalive=True,
                )
                await self.redis.ping()
                self._connected = True
                logger.info(
                    "Redis cache connected: %s:%s",
                    self.settings.redis_host,
                    self.settings.redis_port,
                )
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis connection failed: %s. Cache disabled.", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on shutdown."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis cache disconnected")

    async def _reconnect(self) -> bool:
        """Drop the current client and connect again. Returns True if reconnected."""
        if self.redis is None:
            return False
        try:
            await self.redis.aclose()
        except redis.RedisError:
            logger.debug("Ignoring error while closing Redis client", exc_info=True)
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Any | None:
        """Return cached value (JSON-deserialized) or None if missing/unavailable."""
        if not self.is_available() or self.redis is None:
            return None
        try:
            raw = await self.redis.get(self._key(key))
        except (redis.ConnectionError, redis.TimeoutError):
            if not await self._reconnect():
                logger.warning("Cache get unavailable for key %s (Redis disconnected)", key)
                return None
            try:
                raw = await self.redis.get(self._key(key))
            except redis.RedisError:
                logger.exception("Cache get error for key %s after reconnect", key)
                return None
        except redis.RedisError:
            logger.exception("Cache get error for key %s", key)
            return None
        if raw is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return json.loads(raw)

    async def get_many(self, keys: list[str]) -> dict[str, Any]:
        """Return {key: value or None} using a single MGET."""
        result: dict[str, Any] = dict.fromkeys(keys)
        if not keys or not self.is_available() or self.redis is None:
            return result
        prefixed = [self._key(k) for k in keys]
        try:
            raws = await self.redis.mget(prefixed)
        except (redis.ConnectionError, redis.TimeoutError):
            if not await self._reconnect():
                logger.warning("Cache get_many unavailable (Redis disconnected)")
                return result
            try:
                raws = await self.redis.mget(prefixed)
            except redis.RedisError:
                logger.exception("Cache get_many error after reconnect")
                return result
        except redis.RedisError:
            logger.exception("Cache get_many error for %d keys", len(keys))
            return result
        for key, raw in zip(keys, raws):
            if raw is not None:
                result[key] = json.loads(raw)
        return result

    async def set_forever(self, key: str, value: Any) -> bool:
        """Store value with no expiry. Returns True on success."""
        if not self.is_available() or self.redis is None:
            return False
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError):
            logger.exception("Cache value for key %s is not JSON serializable", key)
            return False
        try:
            await self.redis.set(self._key(key), serialized)
            logger.debug("Cache SET: %s", key)
            return True
        except (redis.ConnectionError, redis.TimeoutError):
            if await self._reconnect():
                try:
                    await self.redis.set(self._key(key), serialized)
                    return True
                except redis.RedisError:
                    logger.exception("Cache set error for key %s after reconnect", key)
                    return False
            logger.warning("Cache set unavailable for key %s (Redis disconnected)", key)
            return False
        except redis.RedisError:
            logger.exception("Cache set error for key %s", key)
            return False

    async def delete(self, key: str) -> bool:
        """Remove key from cache. Returns True if the command ran."""
        if not self.is_available() or self.redis is None:
            return False
        try:
            await self.redis.delete(self._key(key))
            logger.debug("Cache DELETE: %s", key)
            return True
        except (redis.ConnectionError, redis.TimeoutError):
            if await self._reconnect():
                try:
                    await self.redis.delete(self._key(key))
                    return True
                except redis.RedisError:
                    logger.exception("Cache delete error for key %s after reconnect", key)
                    return False
            logger.warning("Cache delete unavailable for key %s (Redis disconnected)", key)
            return False
        except redis.RedisError:
            logger.exception("Cache delete error for key %s", key)
            return False

    async def flush(self) -> bool:
        """Clear the cache.

        With a key prefix only prefixed keys are removed (SCAN + batched
        UNLINK); without one the whole Redis database is flushed.
        """
        if not self.is_available() or self.redis is None:
            return False
        try:
            await self._clear()
            return True
        except (redis.ConnectionError, redis.TimeoutError):
            if await self._reconnect():
                try:
                    await self._clear()
                    return True
                except redis.RedisError:
                    logger.exception("Cache flush error after reconnect")
                    return False
            logger.warning("Cache flush unavailable (Redis disconnected)")
            return False
        except redis.RedisError:
            logger.exception("Cache flush error")
            return False

    async def _clear(self) -> None:
        assert self.redis is not None
        if self.key_prefix:
            deleted = await self._unlink_prefixed()
            logger.warning("Cache CLEARED: %s keys under %r", deleted, self.key_prefix)
        else:
            await self.redis.flushdb()
            logger.warning("Cache CLEARED: all keys deleted")

    async def _unlink_prefixed(self) -> int:
        assert self.redis is not None
        deleted = 0
        chunk: list[str] = []
        async for key in self.redis.scan_iter(match=f"{self.key_prefix}*"):
            chunk.append(key)
            if len(chunk) >= _UNLINK_CHUNK_SIZE:
                deleted += await self.redis.unlink(*chunk)
                chunk = []
        if chunk:
            deleted += await self.redis.unlink(*chunk)
        return deleted

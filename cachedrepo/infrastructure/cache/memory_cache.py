"""In-process cache store.

Values are kept as JSON text, exactly as RedisCacheStore would hold
them, so callers always get a fresh copy and never a shared object.
Suitable for tests, scripts and single-process deployments.
"""

from __future__ import annotations

import json
from typing import Any

from cachedrepo.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class MemoryCacheStore:
    """Dict-backed implementation of CacheProtocol."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def is_available(self) -> bool:
        return True

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return json.loads(raw)

    async def get_many(self, keys: list[str]) -> dict[str, Any]:
        return {key: await self.get(key) for key in keys}

    async def set_forever(self, key: str, value: Any) -> bool:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError):
            logger.exception("Cache value for key %s is not JSON serializable", key)
            return False
        logger.debug("Cache SET: %s", key)
        return True

    async def delete(self, key: str) -> bool:
        existed = self._data.pop(key, None) is not None
        logger.debug("Cache DELETE: %s", key)
        return existed

    async def flush(self) -> bool:
        self._data.clear()
        return True

"""Per-request memo in front of a shared cache store.

Avoids repeated round-trips for the same key within one request. Every
write, delete and flush is applied to the memo and the wrapped store
together. Create one per request (or call reset() between requests);
never share an instance across requests or threads.
"""

from __future__ import annotations

from typing import Any

from cachedrepo.infrastructure.cache.cache_protocol import CacheProtocol


class RequestMemoCache:
    """CacheProtocol wrapper that remembers every hit it has seen."""

    def __init__(self, store: CacheProtocol) -> None:
        self.store = store
        self._memo: dict[str, Any] = {}

    def is_available(self) -> bool:
        return self.store.is_available()

    def reset(self) -> None:
        """Forget everything memoised so far."""
        self._memo.clear()

    async def get(self, key: str) -> Any | None:
        if key in self._memo:
            return self._memo[key]
        value = await self.store.get(key)
        if value is not None:
            self._memo[key] = value
        return value

    async def get_many(self, keys: list[str]) -> dict[str, Any]:
        result = {key: self._memo[key] for key in keys if key in self._memo}
        missing = [key for key in keys if key not in result]
        if missing:
            fetched = await self.store.get_many(missing)
            for key in missing:
                value = fetched.get(key)
                if value is not None:
                    self._memo[key] = value
                result[key] = value
        return result

    async def set_forever(self, key: str, value: Any) -> bool:
        stored = await self.store.set_forever(key, value)
        if stored:
            self._memo[key] = value
        else:
            self._memo.pop(key, None)
        return stored

    async def delete(self, key: str) -> bool:
        self._memo.pop(key, None)
        return await self.store.delete(key)

    async def flush(self) -> bool:
        self._memo.clear()
        return await self.store.flush()

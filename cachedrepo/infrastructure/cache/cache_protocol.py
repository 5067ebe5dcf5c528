"""Cache protocol consumed by cached repositories."""

from typing import Any, Protocol


class CacheProtocol(Protocol):
    """Key-value store with store-forever semantics (no TTL).

    get() returns None for a miss; any other value, including False
    (the negative marker), is a hit.
    """

    def is_available(self) -> bool:
        """Return True if the store is connected and usable."""
        ...

    async def get(self, key: str) -> Any:
        """Return cached value or None."""
        ...

    async def get_many(self, keys: list[str]) -> dict[str, Any]:
        """Return {key: value or None} for every requested key."""
        ...

    async def set_forever(self, key: str, value: Any) -> bool:
        """Store value with no expiry."""
        ...

    async def delete(self, key: str) -> bool:
        """Remove key from cache."""
        ...

    async def flush(self) -> bool:
        """Remove every key this store owns."""
        ...

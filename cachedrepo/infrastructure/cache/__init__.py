"""Cache: stores, key builders and entity serialization.

Used by cached repositories. Key format lives in keys.py; stores
implement CacheProtocol.
"""

from cachedrepo.infrastructure.cache.cache_protocol import CacheProtocol
from cachedrepo.infrastructure.cache.factory import get_cache_store
from cachedrepo.infrastructure.cache.keys import entity_key, field_key
from cachedrepo.infrastructure.cache.memory_cache import MemoryCacheStore
from cachedrepo.infrastructure.cache.redis_cache import RedisCacheStore
from cachedrepo.infrastructure.cache.request_memo import RequestMemoCache
from cachedrepo.infrastructure.cache.serializer import EntitySerializer

__all__ = [
    "CacheProtocol",
    "EntitySerializer",
    "MemoryCacheStore",
    "RedisCacheStore",
    "RequestMemoCache",
    "entity_key",
    "field_key",
    "get_cache_store",
]

"""Cached repository: write-through cache in front of a BaseRepository.

Read path
    find(id) consults "<type>:<id>". A cached entity is returned without
    touching the database; a cached negative marker (False) returns None;
    a miss loads from the database and caches the entity or the marker.
    find_one_by(field, value) caches only "<type>-<field>-id:<hash>" ->
    primary key and resolves through find(), so the entity key stays the
    single cached copy of each row.

Write path
    persist() and the atomic increment re-read the row and overwrite the
    entity key; remove() deletes it. Entries never expire.

Field keys pointing at a removed row are not known to the repository;
subclasses that enable field caching override forget_field_keys().
A miss on a field lookup is not cached: no write path could tell which
field keys a newly inserted row would satisfy.
"""

from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.attributes import set_committed_value

from cachedrepo.core.constants import NEGATIVE_MARKER
from cachedrepo.domain.exceptions import InvalidArgumentException
from cachedrepo.infrastructure.cache.cache_protocol import CacheProtocol
from cachedrepo.infrastructure.cache.keys import entity_key, field_key
from cachedrepo.infrastructure.cache.serializer import EntitySerializer
from cachedrepo.infrastructure.persistence.database import Base
from cachedrepo.infrastructure.persistence.repositories.base import BaseRepository
from cachedrepo.infrastructure.persistence.repositories.or_fail import FindOrFailMixin
from cachedrepo.shared.telemetry.logging import get_logger

ModelType = TypeVar("ModelType", bound=Base)

_logger = get_logger(__name__)


def _is_negative(value: Any) -> bool:
    return value is NEGATIVE_MARKER


class CachedRepository(FindOrFailMixin, Generic[ModelType]):
    """Wraps a BaseRepository; same public contract plus cache management.

    When the cache store reports itself unavailable, reads fall through to
    the database and cache writes are skipped.
    """

    def __init__(
        self,
        repository: BaseRepository[ModelType],
        cache: CacheProtocol,
        *,
        serializer: EntitySerializer | None = None,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self.serializer = serializer or EntitySerializer()

    @property
    def db(self) -> AsyncSession:
        return self.repository.db

    @property
    def model(self) -> type[ModelType]:
        return self.repository.model

    @property
    def entity_type(self) -> str:
        """Name used in cache keys (model class name)."""
        return self.model.__name__

    def new_entity(self, **attrs: Any) -> ModelType:
        return self.repository.new_entity(**attrs)

    def create_not_found_exception(self, value: Any, field: str | None = None) -> Exception:
        return self.repository.create_not_found_exception(value, field)

    # Keys

    def cache_key(self, entity_id: Any) -> str:
        """Key holding the entity (or negative marker) for entity_id."""
        return entity_key(self.entity_type, entity_id)

    def field_cache_key(self, field: str, value: Any) -> str | None:
        """Key holding the primary key of the entity whose field equals value.

        Override and return None to disable field caching (for all or some fields).
        """
        return field_key(self.entity_type, field, value)

    # Cache access

    async def _cache_get(self, key: str) -> Any:
        if not self.cache.is_available():
            return None
        return await self.cache.get(key)

    async def _cache_get_many(self, keys: list[str]) -> dict[str, Any]:
        if not self.cache.is_available():
            return dict.fromkeys(keys)
        return await self.cache.get_many(keys)

    async def _cache_set(self, key: str, value: Any) -> None:
        if not self.cache.is_available():
            return
        if not await self.cache.set_forever(key, value):
            _logger.warning("Cache write failed for %s; entry may be stale", key)

    async def _cache_delete(self, key: str) -> bool:
        if not self.cache.is_available():
            return False
        return await self.cache.delete(key)

    async def _from_cache(self, data: dict[str, Any]) -> ModelType:
        """Rehydrate a cached dict and attach it to the session without SQL.

        An instance already in the identity map wins: its pending edits are
        kept and only its expired attributes are filled from the cache.
        """
        entity = self.serializer.from_cache(self.model, data)
        make_transient_to_detached(entity)
        existing = self.db.identity_map.get(sa_inspect(entity).key)
        if existing is None:
            return await self.db.merge(entity, load=False)
        cached_values = sa_inspect(entity).dict
        for key in sa_inspect(existing).expired_attributes & cached_values.keys():
            set_committed_value(existing, key, cached_values[key])
        return existing

    async def _store_result(
        self, entity_id: Any, entity: ModelType | None, cache_key: str | None = None
    ) -> None:
        """Cache entity, or the negative marker when entity is None."""
        value = self.serializer.to_cache(entity) if entity is not None else NEGATIVE_MARKER
        await self._cache_set(cache_key or self.cache_key(entity_id), value)

    # Database access (overridden by the soft-delete variant to include trashed rows)

    async def _query_by_key(
        self, entity_id: Any, *, populate_existing: bool = False
    ) -> ModelType | None:
        return await self.repository.query_by_key(
            entity_id, populate_existing=populate_existing
        )

    async def _query_by_field(self, field: str, value: Any) -> ModelType | None:
        return await self.repository.query_by_field(field, value)

    async def _query_many_by_keys(self, entity_ids: list[Any]) -> list[ModelType]:
        return await self.repository.query_many_by_keys(entity_ids)

    # Lookups

    async def all(self, skip: int = 0, limit: int | None = None) -> list[ModelType]:
        """Uncached: listing always reads the database."""
        return await self.repository.all(skip=skip, limit=limit)

    async def find(self, entity_id: Any) -> ModelType | None:
        """Return an entity by primary key, or None.

        A miss caches the entity, or the negative marker when there is no row.
        """
        return await self._find_by_id(entity_id)

    async def _find_by_id(self, entity_id: Any) -> ModelType | None:
        # Kept apart from find() so subclasses can filter find() without
        # affecting the field-lookup indirection.
        if not entity_id:
            return None
        key = self.cache_key(entity_id)
        cached = await self._cache_get(key)
        if _is_negative(cached):
            return None
        if cached is not None:
            return await self._from_cache(cached)
        entity = await self._query_by_key(entity_id)
        await self._store_result(entity_id, entity, key)
        return entity

    async def find_many(self, entity_ids: Iterable[Any]) -> list[ModelType]:
        """Return entities for the given keys in one cache round-trip (unordered).

        Cached entities and negative markers are used as is; the rest are
        loaded in one query and cached positively or negatively.
        """
        remaining = {self.cache_key(i): i for i in entity_ids if i}
        if not remaining:
            return []
        found: dict[str, ModelType] = {}
        cached = await self._cache_get_many(list(remaining))
        for key, value in cached.items():
            if value is None or key not in remaining:
                continue
            del remaining[key]
            if not _is_negative(value):
                found[key] = await self._from_cache(value)
        if remaining:
            loaded = {
                self.cache_key(self.repository.primary_key_of(entity)): entity
                for entity in await self._query_many_by_keys(list(remaining.values()))
            }
            for key, entity_id in remaining.items():
                entity = loaded.get(key)
                await self._store_result(entity_id, entity, key)
                if entity is not None:
                    found[key] = entity
        return list(found.values())

    async def find_one_by(self, field: str, value: Any) -> ModelType | None:
        """Return the first entity whose field equals value, or None.

        Raises:
            InvalidArgumentException: If field is empty or not a column.
        """
        return await self._find_one_by(field, value)

    async def _find_one_by(self, field: str, value: Any) -> ModelType | None:
        if not field:
            raise InvalidArgumentException("A field must be specified.", field="field")
        self.repository.column_for(field)
        if not value:
            return None
        id_key = self.field_cache_key(field, value)
        if id_key:
            cached_id = await self._cache_get(id_key)
            if _is_negative(cached_id):
                return None
            if cached_id is not None:
                return await self._find_by_id(
                    self.serializer.load_value(self._primary_key_type, cached_id)
                )
        entity = await self._query_by_field(field, value)
        if entity is None:
            return None
        await self.remember(entity)
        if id_key:
            await self._cache_set(
                id_key, self.serializer.dump_value(self.repository.primary_key_of(entity))
            )
        return entity

    @property
    def _primary_key_type(self) -> Any:
        return sa_inspect(self.model).primary_key[0].type

    # Cache management

    async def remember(self, entity: ModelType) -> None:
        """Store entity under its primary-key cache key."""
        await self._store_result(self.repository.primary_key_of(entity), entity)

    async def forget_by_id(self, entity_id: Any) -> bool:
        """Delete the cached entity for entity_id (field keys are left alone)."""
        return await self._cache_delete(self.cache_key(entity_id))

    async def forget_by_entity(self, entity: ModelType) -> bool:
        return await self.forget_by_id(self.repository.primary_key_of(entity))

    async def forget_field_keys(self, entity: ModelType) -> None:
        """Forget field-lookup keys that point at entity. Called by remove().

        Does nothing by default; override when field_cache_key is used,
        e.g. ``await self._cache_delete(self.field_cache_key("email", entity.email))``.
        """

    async def refresh_by_id(self, entity_id: Any) -> ModelType | None:
        """Re-read entity_id from the database (ignoring the cache) and cache the result."""
        entity = await self._query_by_key(entity_id, populate_existing=True)
        await self._store_result(entity_id, entity)
        return entity

    async def fresh(self, entity: ModelType) -> ModelType | None:
        """Reload entity from the database and overwrite its cache entry."""
        return await self.refresh_by_id(self.repository.primary_key_of(entity))

    # Writes

    async def persist(self, entity: ModelType) -> bool:
        """Save through the wrapped repository, then cache a fresh copy.

        Returns False (cache untouched) when the save is vetoed.
        """
        if not await self.repository.persist(entity):
            return False
        await self.fresh(entity)
        return True

    async def remove(self, entity: ModelType) -> bool:
        """Delete through the wrapped repository, then forget its cache keys."""
        result = await self.repository.remove(entity)
        if result:
            await self.forget_field_keys(entity)
            await self.forget_by_entity(entity)
        return result

    async def increment(
        self, entity: ModelType, column: str, amount: int = 1
    ) -> ModelType | None:
        await self.increment_or_decrement(entity, column, amount)
        return await self.find(self.repository.primary_key_of(entity))

    async def decrement(
        self, entity: ModelType, column: str, amount: int = 1
    ) -> ModelType | None:
        return await self.increment(entity, column, -amount)

    async def increment_or_decrement(
        self, entity: ModelType, column: str, amount: int = 1
    ) -> bool:
        """Atomic adjustment, then an unconditional refresh of the cached entity."""
        result = await self.repository.increment_or_decrement(entity, column, amount)
        await self.refresh_by_id(self.repository.primary_key_of(entity))
        return result

"""Cached repository for soft-deletable models.

The cache holds one canonical value per primary key whatever its trashed
state: every database read includes trashed rows, and the public methods
filter that single value into three views (live, with trashed, only
trashed). Cache keys never depend on the view.
"""

from collections.abc import Iterable
from typing import Any, TypeVar

from cachedrepo.infrastructure.cache.cache_protocol import CacheProtocol
from cachedrepo.infrastructure.cache.serializer import EntitySerializer
from cachedrepo.infrastructure.persistence.database import Base
from cachedrepo.infrastructure.persistence.repositories.cached_repo import (
    CachedRepository,
)
from cachedrepo.infrastructure.persistence.repositories.or_fail import (
    SoftDeletableOrFailMixin,
)
from cachedrepo.infrastructure.persistence.repositories.soft_deletable_repo import (
    SoftDeletableRepository,
    is_trashed,
)

ModelType = TypeVar("ModelType", bound=Base)


def _live(entity: Any) -> Any:
    return None if entity is None or is_trashed(entity) else entity


def _trashed(entity: Any) -> Any:
    return entity if entity is not None and is_trashed(entity) else None


class CachedSoftDeletableRepository(
    SoftDeletableOrFailMixin, CachedRepository[ModelType]
):
    """Wraps a SoftDeletableRepository."""

    repository: SoftDeletableRepository[ModelType]

    def __init__(
        self,
        repository: SoftDeletableRepository[ModelType],
        cache: CacheProtocol,
        *,
        serializer: EntitySerializer | None = None,
    ) -> None:
        super().__init__(repository, cache, serializer=serializer)

    async def _query_by_key(
        self, entity_id: Any, *, populate_existing: bool = False
    ) -> ModelType | None:
        return await self.repository.query_by_key_with_trashed(
            entity_id, populate_existing=populate_existing
        )

    async def _query_by_field(self, field: str, value: Any) -> ModelType | None:
        return await self.repository.query_by_field_with_trashed(field, value)

    async def _query_many_by_keys(self, entity_ids: list[Any]) -> list[ModelType]:
        return await self.repository.query_many_by_keys_with_trashed(entity_ids)

    # By primary key

    async def find(self, entity_id: Any) -> ModelType | None:
        """Return the entity unless it is trashed (it is cached either way)."""
        return _live(await self._find_by_id(entity_id))

    async def find_with_trashed(self, entity_id: Any) -> ModelType | None:
        return await self._find_by_id(entity_id)

    async def find_trashed(self, entity_id: Any) -> ModelType | None:
        return _trashed(await self._find_by_id(entity_id))

    async def find_many(self, entity_ids: Iterable[Any]) -> list[ModelType]:
        """Like find_many_with_trashed, minus trashed entities."""
        return [e for e in await super().find_many(entity_ids) if not is_trashed(e)]

    async def find_many_with_trashed(self, entity_ids: Iterable[Any]) -> list[ModelType]:
        return await super().find_many(entity_ids)

    # By field

    async def find_one_by(self, field: str, value: Any) -> ModelType | None:
        return _live(await self._find_one_by(field, value))

    async def find_one_by_with_trashed(self, field: str, value: Any) -> ModelType | None:
        return await self._find_one_by(field, value)

    async def find_trashed_one_by(self, field: str, value: Any) -> ModelType | None:
        return _trashed(await self._find_one_by(field, value))

    # Writes

    async def force_remove(self, entity: ModelType) -> bool:
        """Physically delete, then forget its cache keys."""
        result = await self.repository.force_remove(entity)
        if result:
            await self.forget_field_keys(entity)
            await self.forget_by_entity(entity)
        return result

    async def restore(self, entity: ModelType) -> bool:
        """Un-trash, then overwrite the cached entity."""
        result = await self.repository.restore(entity)
        if result:
            await self.fresh(entity)
        return result

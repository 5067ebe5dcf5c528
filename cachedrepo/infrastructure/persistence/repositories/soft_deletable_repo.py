"""Soft-deletable repository: deleted_at aware queries and writes.

Default lookups hide trashed rows. The ..._with_trashed variants include
them and the ..._trashed variants return nothing else. remove() stamps
deleted_at; force_remove() deletes the row.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy import Select, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import object_session

from cachedrepo.domain.exceptions import InvalidArgumentException
from cachedrepo.domain.not_found import NotFoundFactory
from cachedrepo.infrastructure.persistence.database import Base
from cachedrepo.infrastructure.persistence.repositories.base import (
    BaseRepository,
    _is_gone,
    _is_unsaved,
    dirty_original_values,
)
from cachedrepo.infrastructure.persistence.repositories.listeners import (
    RepositoryListener,
)
from cachedrepo.infrastructure.persistence.repositories.or_fail import (
    SoftDeletableOrFailMixin,
)
from cachedrepo.shared.enums import TrashedScope

ModelType = TypeVar("ModelType", bound=Base)

DELETED_AT_FIELD = "deleted_at"


def is_trashed(entity: Any) -> bool:
    """Return True when entity carries a non-null deleted_at."""
    return getattr(entity, DELETED_AT_FIELD, None) is not None


class SoftDeletableRepository(
    SoftDeletableOrFailMixin, BaseRepository[ModelType]
):
    """Repository for models with a nullable deleted_at column (see SoftDeleteMixin)."""

    def __init__(
        self,
        db: AsyncSession,
        model: type[ModelType],
        *,
        listeners: Iterable[RepositoryListener] | None = None,
        not_found_factory: NotFoundFactory | None = None,
    ) -> None:
        if DELETED_AT_FIELD not in sa_inspect(model).column_attrs:
            raise ValueError(
                f"{model.__name__} has no {DELETED_AT_FIELD!r} column; "
                "add SoftDeleteMixin to use SoftDeletableRepository."
            )
        super().__init__(
            db, model, listeners=listeners, not_found_factory=not_found_factory
        )

    def _select(self, scope: TrashedScope = TrashedScope.WITHOUT) -> Select[Any]:
        stmt = select(self.model)
        deleted_at = getattr(self.model, DELETED_AT_FIELD)
        if scope is TrashedScope.WITHOUT:
            return stmt.where(deleted_at.is_(None))
        if scope is TrashedScope.ONLY:
            return stmt.where(deleted_at.is_not(None))
        return stmt

    async def _query_by_key_in(
        self, scope: TrashedScope, entity_id: Any, populate_existing: bool = False
    ) -> ModelType | None:
        stmt = self._where_key(self._select(scope), entity_id)
        return await self._first(stmt, populate_existing=populate_existing)

    async def _query_by_field_in(
        self, scope: TrashedScope, field: str, value: Any
    ) -> ModelType | None:
        return await self._first(
            self._select(scope).where(self.column_for(field) == value)
        )

    async def query_by_key_with_trashed(
        self, entity_id: Any, *, populate_existing: bool = False
    ) -> ModelType | None:
        return await self._query_by_key_in(
            TrashedScope.WITH, entity_id, populate_existing
        )

    async def query_by_key_only_trashed(self, entity_id: Any) -> ModelType | None:
        return await self._query_by_key_in(TrashedScope.ONLY, entity_id)

    async def query_by_field_with_trashed(
        self, field: str, value: Any
    ) -> ModelType | None:
        return await self._query_by_field_in(TrashedScope.WITH, field, value)

    async def query_by_field_only_trashed(
        self, field: str, value: Any
    ) -> ModelType | None:
        return await self._query_by_field_in(TrashedScope.ONLY, field, value)

    async def query_many_by_keys_with_trashed(
        self, entity_ids: list[Any]
    ) -> list[ModelType]:
        if not entity_ids:
            return []
        pk = getattr(self.model, self.primary_key_name)
        return await self._all(self._select(TrashedScope.WITH).where(pk.in_(entity_ids)))

    # Lookups that MAY or MUST return trashed rows

    async def find_with_trashed(self, entity_id: Any) -> ModelType | None:
        if not entity_id:
            return None
        return await self.query_by_key_with_trashed(entity_id)

    async def find_trashed(self, entity_id: Any) -> ModelType | None:
        if not entity_id:
            return None
        return await self.query_by_key_only_trashed(entity_id)

    async def find_many_with_trashed(self, entity_ids: Iterable[Any]) -> list[ModelType]:
        return await self.query_many_by_keys_with_trashed([i for i in entity_ids if i])

    async def find_one_by_with_trashed(self, field: str, value: Any) -> ModelType | None:
        if not field:
            raise InvalidArgumentException("A field must be specified.", field="field")
        if not value:
            return None
        return await self.query_by_field_with_trashed(field, value)

    async def find_trashed_one_by(self, field: str, value: Any) -> ModelType | None:
        if not field:
            raise InvalidArgumentException("A field must be specified.", field="field")
        if not value:
            return None
        return await self.query_by_field_only_trashed(field, value)

    async def fresh(self, entity: ModelType) -> ModelType | None:
        """Reload entity from the database whether or not it is trashed."""
        return await self.query_by_key_with_trashed(
            self.primary_key_of(entity), populate_existing=True
        )

    # Writes

    async def remove(self, entity: ModelType) -> bool:
        """Soft delete: set deleted_at to now, then fire delete and change hooks."""
        if _is_unsaved(entity) or _is_gone(entity):
            return False
        if object_session(entity) is not self.db.sync_session:
            entity = await self.db.merge(entity)
        setattr(entity, DELETED_AT_FIELD, datetime.now(UTC))
        await self.db.flush()
        await self._on_delete(entity)
        await self._on_change(entity, {})
        return True

    async def force_remove(self, entity: ModelType) -> bool:
        """Physically delete the row, trashed or not."""
        return await super().remove(entity)

    async def restore(self, entity: ModelType) -> bool:
        """Clear deleted_at, then fire update and change hooks.

        Returns False when entity was never persisted or is not trashed.
        """
        if _is_unsaved(entity) or _is_gone(entity) or not is_trashed(entity):
            return False
        if object_session(entity) is not self.db.sync_session:
            entity = await self.db.merge(entity)
        setattr(entity, DELETED_AT_FIELD, None)
        dirty = dirty_original_values(entity)
        await self.db.flush()
        await self._on_update(entity, dirty)
        await self._on_change(entity, dirty)
        return True

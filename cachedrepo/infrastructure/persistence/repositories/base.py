"""Base repository: uncached CRUD, queries and lifecycle hooks.

Every read goes to the database. CachedRepository wraps an instance of
this class and uses the query_* methods as its source of truth.
"""

from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, select, update
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import object_session
from sqlalchemy.orm.attributes import InstrumentedAttribute, set_committed_value

from cachedrepo.domain.exceptions import InvalidArgumentException
from cachedrepo.domain.not_found import NotFoundFactory, not_found_factories
from cachedrepo.infrastructure.persistence.database import Base
from cachedrepo.infrastructure.persistence.repositories.listeners import (
    RepositoryListener,
)
from cachedrepo.infrastructure.persistence.repositories.or_fail import FindOrFailMixin
from cachedrepo.shared.telemetry.logging import get_logger

ModelType = TypeVar("ModelType", bound=Base)

_logger = get_logger(__name__)


def dirty_original_values(entity: Any) -> dict[str, Any]:
    """Return {field: value before the change} for each modified column.

    Fields set on a never-persisted instance report None as their
    previous value. Never triggers a load.
    """
    state = sa_inspect(entity)
    dirty: dict[str, Any] = {}
    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        if history.has_changes():
            dirty[attr.key] = history.deleted[0] if history.deleted else None
    return dirty


def _is_unsaved(entity: Any) -> bool:
    state = sa_inspect(entity)
    return state.transient or state.pending


def _is_gone(entity: Any) -> bool:
    state = sa_inspect(entity)
    return state.deleted or state.was_deleted


class BaseRepository(FindOrFailMixin, Generic[ModelType]):
    """Repository with find/find_many/find_one_by, persist, remove and hooks.

    Subclasses override _on_insert, _on_update, _on_delete, _on_change (and
    _before_insert to veto) or register RepositoryListener instances. Models
    must have a single-column primary key.
    """

    def __init__(
        self,
        db: AsyncSession,
        model: type[ModelType],
        *,
        listeners: Iterable[RepositoryListener] | None = None,
        not_found_factory: NotFoundFactory | None = None,
    ) -> None:
        mapper = sa_inspect(model)
        if len(mapper.primary_key) != 1:
            raise ValueError(
                f"{model.__name__} must have exactly one primary key column."
            )
        self.db = db
        self.model = model
        self.primary_key_name = mapper.get_property_by_column(mapper.primary_key[0]).key
        self._listeners: list[RepositoryListener] = list(listeners or [])
        self._not_found_factory = not_found_factory

    def add_listener(self, listener: RepositoryListener) -> None:
        """Register listener for lifecycle events."""
        self._listeners.append(listener)

    def remove_listener(self, listener: RepositoryListener) -> None:
        """Unregister listener; ignored if it was never registered."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> tuple[RepositoryListener, ...]:
        return tuple(self._listeners)

    def new_entity(self, **attrs: Any) -> ModelType:
        """Return a new, unsaved instance of the model."""
        return self.model(**attrs)

    def primary_key_of(self, entity: Any) -> Any:
        """Primary key of entity, read without triggering a load."""
        state = sa_inspect(entity)
        if state.identity:
            return state.identity[0]
        return state.dict.get(self.primary_key_name)

    def column_for(self, field: str) -> InstrumentedAttribute[Any]:
        """Return the mapped column attribute named field.

        Raises:
            InvalidArgumentException: If field is empty or not a column of the model.
        """
        if not field:
            raise InvalidArgumentException("A field must be specified.", field="field")
        if field not in sa_inspect(self.model).column_attrs:
            raise InvalidArgumentException(
                f"{self.model.__name__} has no column {field!r}.", field=field
            )
        return getattr(self.model, field)

    def create_not_found_exception(self, value: Any, field: str | None = None) -> Exception:
        """Build the error raised by the ..._or_fail lookups."""
        factory = self._not_found_factory or not_found_factories.get()
        return factory(self.model, field or self.primary_key_name, value)

    # Queries (always hit the database)

    def _select(self) -> Select[Any]:
        return select(self.model)

    def _where_key(self, stmt: Select[Any], entity_id: Any) -> Select[Any]:
        return stmt.where(getattr(self.model, self.primary_key_name) == entity_id)

    async def _first(
        self, stmt: Select[Any], *, populate_existing: bool = False
    ) -> ModelType | None:
        stmt = stmt.limit(1)
        if not populate_existing:
            result = await self.db.execute(stmt)
            return result.scalars().first()
        # Pending in-memory changes must not be flushed into a refresh.
        with self.db.no_autoflush:
            result = await self.db.execute(
                stmt.execution_options(populate_existing=True)
            )
            return result.scalars().first()

    async def _all(self, stmt: Select[Any]) -> list[ModelType]:
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def query_by_key(
        self, entity_id: Any, *, populate_existing: bool = False
    ) -> ModelType | None:
        """Load one entity by primary key.

        With populate_existing, an instance already in the session is
        overwritten with the database row.
        """
        stmt = self._where_key(self._select(), entity_id)
        return await self._first(stmt, populate_existing=populate_existing)

    async def query_by_field(self, field: str, value: Any) -> ModelType | None:
        """Load the first entity whose field equals value."""
        return await self._first(self._select().where(self.column_for(field) == value))

    async def query_many_by_keys(self, entity_ids: list[Any]) -> list[ModelType]:
        """Load every entity whose primary key is in entity_ids (unordered)."""
        if not entity_ids:
            return []
        pk = getattr(self.model, self.primary_key_name)
        return await self._all(self._select().where(pk.in_(entity_ids)))

    # Public lookups

    async def all(self, skip: int = 0, limit: int | None = None) -> list[ModelType]:
        """Return entities ordered by primary key, with optional pagination."""
        pk = getattr(self.model, self.primary_key_name)
        stmt = self._select().order_by(pk).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._all(stmt)

    async def find(self, entity_id: Any) -> ModelType | None:
        """Return an entity by primary key, or None. Empty keys return None."""
        if not entity_id:
            return None
        return await self.query_by_key(entity_id)

    async def find_many(self, entity_ids: Iterable[Any]) -> list[ModelType]:
        """Return entities for the given primary keys; missing ones are skipped."""
        return await self.query_many_by_keys([i for i in entity_ids if i])

    async def find_one_by(self, field: str, value: Any) -> ModelType | None:
        """Return the first entity whose field equals value, or None.

        Raises:
            InvalidArgumentException: If field is empty.
        """
        if not field:
            raise InvalidArgumentException("A field must be specified.", field="field")
        if not value:
            return None
        return await self.query_by_field(field, value)

    async def fresh(self, entity: ModelType) -> ModelType | None:
        """Reload entity from the database, discarding unsaved changes.

        Returns None if the row no longer exists.
        """
        return await self.query_by_key(self.primary_key_of(entity), populate_existing=True)

    # Writes

    async def persist(self, entity: ModelType) -> bool:
        """Insert or update entity, then fire insert/update and change hooks.

        Detached instances are merged into the session. Returns False when
        the insert is vetoed by _before_insert; database errors propagate.
        """
        is_new = _is_unsaved(entity)
        dirty = dirty_original_values(entity)
        if is_new:
            if not await self._before_insert(entity):
                _logger.info("Insert of %s vetoed by listener", self.model.__name__)
                return False
            self.db.add(entity)
        elif object_session(entity) is not self.db.sync_session:
            entity = await self.db.merge(entity)
        await self.db.flush()
        await self.db.refresh(entity)
        if is_new:
            await self._on_insert(entity)
        else:
            await self._on_update(entity, dirty)
        await self._on_change(entity, dirty)
        return True

    async def remove(self, entity: ModelType) -> bool:
        """Delete entity, then fire delete and change hooks.

        Returns False for instances that were never persisted or are
        already deleted.
        """
        if _is_unsaved(entity) or _is_gone(entity):
            return False
        if object_session(entity) is not self.db.sync_session:
            entity = await self.db.merge(entity)
        await self.db.delete(entity)
        await self.db.flush()
        await self._on_delete(entity)
        await self._on_change(entity, {})
        return True

    async def increment(
        self, entity: ModelType, column: str, amount: int = 1
    ) -> ModelType | None:
        """Atomically add amount to column; return the entity with the new value."""
        await self.increment_or_decrement(entity, column, amount)
        return await self.find(self.primary_key_of(entity))

    async def decrement(
        self, entity: ModelType, column: str, amount: int = 1
    ) -> ModelType | None:
        """Atomically subtract amount from column; return the entity with the new value."""
        return await self.increment(entity, column, -amount)

    async def increment_or_decrement(
        self, entity: ModelType, column: str, amount: int = 1
    ) -> bool:
        """Adjust column by amount in a single UPDATE keyed by primary key.

        The in-memory value is never used to compute the new one, so stale
        copies cannot lose concurrent updates. Afterwards the column is
        reloaded on attached instances. Returns True if a row was updated.
        """
        attr = self.column_for(column)
        amount = int(amount)
        entity_id = self.primary_key_of(entity)
        previous = sa_inspect(entity).dict.get(column)
        stmt = (
            update(self.model)
            .where(getattr(self.model, self.primary_key_name) == entity_id)
            .values({attr: attr + amount})
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        dirty = {column: previous}
        await self._on_update(entity, dirty)
        await self._on_change(entity, dirty)
        if object_session(entity) is self.db.sync_session:
            await self.db.refresh(entity, [column])
        elif previous is not None:
            set_committed_value(entity, column, previous + amount)
        return result.rowcount > 0

    # Hooks

    async def _before_insert(self, entity: ModelType) -> bool:
        for listener in self._listeners:
            if await listener.before_insert(entity) is False:
                return False
        return True

    async def _on_insert(self, entity: ModelType) -> None:
        for listener in self._listeners:
            await listener.on_insert(entity)

    async def _on_update(self, entity: ModelType, dirty: dict[str, Any]) -> None:
        for listener in self._listeners:
            await listener.on_update(entity, dirty)

    async def _on_delete(self, entity: ModelType) -> None:
        for listener in self._listeners:
            await listener.on_delete(entity)

    async def _on_change(self, entity: ModelType, dirty: dict[str, Any]) -> None:
        for listener in self._listeners:
            await listener.on_change(entity, dirty)

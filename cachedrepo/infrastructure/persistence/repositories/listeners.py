"""Repository lifecycle listeners.

A repository publishes to every registered listener, in registration
order, after each successful write. Listener exceptions propagate to
the caller of the repository method.
"""

from __future__ import annotations

import logging
from typing import Any

from cachedrepo.shared.enums import RepositoryEvent
from cachedrepo.shared.telemetry.logging import get_logger


class RepositoryListener:
    """No-op base class; override the events you care about.

    dirty maps each changed field to its value before the write. It is
    empty on delete.
    """

    async def before_insert(self, entity: Any) -> bool:
        """Return False to veto the insert (persist() then returns False)."""
        return True

    async def on_insert(self, entity: Any) -> None:
        """Called after an entity is saved for the first time."""

    async def on_update(self, entity: Any, dirty: dict[str, Any]) -> None:
        """Called after an existing entity is updated."""

    async def on_delete(self, entity: Any) -> None:
        """Called after an entity is deleted (or soft deleted)."""

    async def on_change(self, entity: Any, dirty: dict[str, Any]) -> None:
        """Called after on_insert, on_update or on_delete."""


class LoggingListener(RepositoryListener):
    """Log every lifecycle event with the entity type, key and changed fields."""

    def __init__(
        self, logger: logging.Logger | None = None, level: int = logging.DEBUG
    ) -> None:
        self.logger = logger or get_logger(__name__)
        self.level = level

    def _log(
        self, event: RepositoryEvent, entity: Any, dirty: dict[str, Any] | None = None
    ) -> None:
        self.logger.log(
            self.level,
            "%s %s id=%s fields=%s",
            type(entity).__name__,
            event.value,
            getattr(entity, "id", None),
            sorted(dirty) if dirty else [],
        )

    async def on_insert(self, entity: Any) -> None:
        self._log(RepositoryEvent.INSERTED, entity)

    async def on_update(self, entity: Any, dirty: dict[str, Any]) -> None:
        self._log(RepositoryEvent.UPDATED, entity, dirty)

    async def on_delete(self, entity: Any) -> None:
        self._log(RepositoryEvent.DELETED, entity)

    async def on_change(self, entity: Any, dirty: dict[str, Any]) -> None:
        self._log(RepositoryEvent.CHANGED, entity, dirty)

"""Registry of which repository serves which entity class.

Lets generic code (e.g. counter maintenance, admin tooling) obtain a
repository for an entity it did not create. Factories receive the
session and return a ready repository.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

RepositoryFactory = Callable[[AsyncSession], Any]


class RepositoryRegistry:
    """Map entity classes to repository factories."""

    def __init__(self) -> None:
        self._factories: dict[type, RepositoryFactory] = {}

    def register(self, factory: RepositoryFactory, *entity_classes: type) -> None:
        """Serve every class in entity_classes with factory (last registration wins)."""
        for entity_class in entity_classes:
            self._factories[entity_class] = factory

    def unregister(self, entity_class: type) -> None:
        self._factories.pop(entity_class, None)

    def clear(self) -> None:
        self._factories.clear()

    def registered_entity_classes(self) -> list[type]:
        return list(self._factories)

    def repository_class_for(self, entity_class: type) -> type | None:
        """Return the registered factory when it is a class, else None."""
        factory = self._factories.get(entity_class)
        return factory if isinstance(factory, type) else None

    def repository_for(self, entity_class: type, db: AsyncSession) -> Any | None:
        """Build the repository for entity_class, or None if not registered."""
        factory = self._factories.get(entity_class)
        if factory is None:
            return None
        return factory(db)

    def repository_for_entity(self, entity: Any, db: AsyncSession) -> Any | None:
        return self.repository_for(type(entity), db)

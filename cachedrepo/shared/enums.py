"""Shared enumerations used by repositories and listeners."""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class RepositoryEvent(_ValuesMixin, str, Enum):
    """Lifecycle events a repository publishes to its listeners."""

    INSERTED = "inserted"
    UPDATED = "updated"
    DELETED = "deleted"
    CHANGED = "changed"


class TrashedScope(_ValuesMixin, str, Enum):
    """Which rows a soft-delete aware query may return."""

    WITHOUT = "without_trashed"
    WITH = "with_trashed"
    ONLY = "only_trashed"

"""Persistence repositories. Re-exports for dependency injection."""

from cachedrepo.infrastructure.persistence.repositories.base import BaseRepository
from cachedrepo.infrastructure.persistence.repositories.cached_repo import (
    CachedRepository,
)
from cachedrepo.infrastructure.persistence.repositories.cached_soft_deletable_repo import (
    CachedSoftDeletableRepository,
)
from cachedrepo.infrastructure.persistence.repositories.counters import (
    ParentCountListener,
    update_parent_count_field,
)
from cachedrepo.infrastructure.persistence.repositories.listeners import (
    LoggingListener,
    RepositoryListener,
)
from cachedrepo.infrastructure.persistence.repositories.registry import (
    RepositoryRegistry,
)
from cachedrepo.infrastructure.persistence.repositories.soft_deletable_repo import (
    SoftDeletableRepository,
    is_trashed,
)

__all__ = [
    "BaseRepository",
    "CachedRepository",
    "CachedSoftDeletableRepository",
    "LoggingListener",
    "ParentCountListener",
    "RepositoryListener",
    "RepositoryRegistry",
    "SoftDeletableRepository",
    "is_trashed",
    "update_parent_count_field",
]

"""cachedrepo: repositories over SQLAlchemy with a write-through entity cache."""

from cachedrepo.domain.exceptions import (
    DatabaseNotConfiguredException,
    EntityNotFoundException,
    InvalidArgumentException,
    RepositoryException,
)
from cachedrepo.domain.not_found import (
    NotFoundFactoryRegistry,
    friendly_not_found_factory,
    not_found_factories,
)
from cachedrepo.infrastructure.cache import (
    CacheProtocol,
    EntitySerializer,
    MemoryCacheStore,
    RedisCacheStore,
    RequestMemoCache,
    get_cache_store,
)
from cachedrepo.infrastructure.persistence.database import Base
from cachedrepo.infrastructure.persistence.models import SoftDeleteMixin
from cachedrepo.infrastructure.persistence.repositories import (
    BaseRepository,
    CachedRepository,
    CachedSoftDeletableRepository,
    LoggingListener,
    ParentCountListener,
    RepositoryListener,
    RepositoryRegistry,
    SoftDeletableRepository,
    update_parent_count_field,
)

__all__ = [
    "Base",
    "BaseRepository",
    "CacheProtocol",
    "CachedRepository",
    "CachedSoftDeletableRepository",
    "DatabaseNotConfiguredException",
    "EntityNotFoundException",
    "EntitySerializer",
    "InvalidArgumentException",
    "LoggingListener",
    "MemoryCacheStore",
    "NotFoundFactoryRegistry",
    "ParentCountListener",
    "RedisCacheStore",
    "RepositoryException",
    "RepositoryListener",
    "RepositoryRegistry",
    "RequestMemoCache",
    "SoftDeleteMixin",
    "SoftDeletableRepository",
    "friendly_not_found_factory",
    "get_cache_store",
    "not_found_factories",
    "update_parent_count_field",
]

"""Model mixins for entities managed by repositories."""

from cachedrepo.infrastructure.persistence.models.mixins import SoftDeleteMixin

__all__ = ["SoftDeleteMixin"]

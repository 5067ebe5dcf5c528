"""SQLAlchemy mixins for repository-managed models.

SoftDeletableRepository requires SoftDeleteMixin (or an equivalent
nullable deleted_at column) on its model.
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declared_attr, mapped_column


class SoftDeleteMixin:
    """Mixin for soft delete (deleted_at). Null means not deleted."""

    @declared_attr
    def deleted_at(cls) -> Mapped[datetime | None]:
        return mapped_column(DateTime(timezone=True), nullable=True, index=True)

    def trashed(self) -> bool:
        """Return True when the row is soft deleted."""
        return self.deleted_at is not None

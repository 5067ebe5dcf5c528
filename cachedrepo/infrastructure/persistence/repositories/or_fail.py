"""..._or_fail lookups shared by every repository flavour.

Each method wraps the matching lookup and raises the repository's
not-found error (see create_not_found_exception) when it returns None.
"""

from __future__ import annotations

from typing import Any


class FindOrFailMixin:
    """find_or_fail / find_one_by_or_fail on top of find / find_one_by."""

    async def find_or_fail(self, entity_id: Any) -> Any:
        entity = await self.find(entity_id)
        if entity is None:
            raise self.create_not_found_exception(entity_id)
        return entity

    async def find_one_by_or_fail(self, field: str, value: Any) -> Any:
        entity = await self.find_one_by(field, value)
        if entity is None:
            raise self.create_not_found_exception(value, field)
        return entity


class SoftDeletableOrFailMixin(FindOrFailMixin):
    """Adds the ..._or_fail variants of the trashed-aware lookups."""

    async def find_with_trashed_or_fail(self, entity_id: Any) -> Any:
        entity = await self.find_with_trashed(entity_id)
        if entity is None:
            raise self.create_not_found_exception(entity_id)
        return entity

    async def find_trashed_or_fail(self, entity_id: Any) -> Any:
        entity = await self.find_trashed(entity_id)
        if entity is None:
            raise self.create_not_found_exception(entity_id)
        return entity

    async def find_one_by_with_trashed_or_fail(self, field: str, value: Any) -> Any:
        entity = await self.find_one_by_with_trashed(field, value)
        if entity is None:
            raise self.create_not_found_exception(value, field)
        return entity

    async def find_trashed_one_by_or_fail(self, field: str, value: Any) -> Any:
        entity = await self.find_trashed_one_by(field, value)
        if entity is None:
            raise self.create_not_found_exception(value, field)
        return entity

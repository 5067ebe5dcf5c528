"""Denormalised counter maintenance.

Example: posts carry comment_count. When a comment moves from one post
to another, the old post is decremented and the new one incremented,
each through the repository's atomic increment so cached copies of the
posts are refreshed too.
"""

from __future__ import annotations

from typing import Any

from cachedrepo.infrastructure.persistence.repositories.listeners import (
    RepositoryListener,
)


async def update_parent_count_field(
    entity: Any,
    value_field: str,
    count_field: str,
    old_value: Any,
    repository: Any,
) -> bool:
    """Move one unit of count_field from the old parent to the new one.

    Args:
        entity: The child (a comment in the example).
        value_field: Child field holding the parent key ('post_id').
        count_field: Parent counter column ('comment_count').
        old_value: value_field before the change (None for a new child).
        repository: Repository (cached or not) serving the parent entity.

    Returns:
        False when the parent key did not change, True otherwise.
    """
    new_value = getattr(entity, value_field)
    if old_value == new_value:
        return False
    if old_value:
        old_parent = await repository.find(old_value)
        if old_parent is not None:
            await repository.decrement(old_parent, count_field)
    if new_value:
        new_parent = await repository.find(new_value)
        if new_parent is not None:
            await repository.increment(new_parent, count_field)
    return True


class ParentCountListener(RepositoryListener):
    """Keep a parent counter in step with child inserts, moves and deletes."""

    def __init__(self, value_field: str, count_field: str, parent_repository: Any) -> None:
        self.value_field = value_field
        self.count_field = count_field
        self.parent_repository = parent_repository

    async def on_insert(self, entity: Any) -> None:
        await update_parent_count_field(
            entity, self.value_field, self.count_field, None, self.parent_repository
        )

    async def on_update(self, entity: Any, dirty: dict[str, Any]) -> None:
        if self.value_field in dirty:
            await update_parent_count_field(
                entity,
                self.value_field,
                self.count_field,
                dirty[self.value_field],
                self.parent_repository,
            )

    async def on_delete(self, entity: Any) -> None:
        parent_id = getattr(entity, self.value_field)
        if not parent_id:
            return
        parent = await self.parent_repository.find(parent_id)
        if parent is not None:
            await self.parent_repository.decrement(parent, self.count_field)

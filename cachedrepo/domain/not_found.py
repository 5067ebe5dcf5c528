"""Not-found error factories.

A factory receives (entity class, field, value) and returns the exception
an ..._or_fail lookup raises. Repositories take one at construction; when
they don't, the process-wide default held by ``not_found_factories`` is
used, and when that is unset EntityNotFoundException is built directly.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from cachedrepo.domain.exceptions import EntityNotFoundException

NotFoundFactory = Callable[[type, str, Any], Exception]


def default_not_found_factory(
    entity_class: type, field: str, value: Any
) -> Exception:
    """Build EntityNotFoundException naming the class, field and value."""
    return EntityNotFoundException(entity_class.__name__, value, field=field)


def friendly_not_found_factory(
    entity_class: type, field: str, value: Any
) -> Exception:
    """Build an EntityNotFoundException with an end-user message.

    e.g. "The post you were looking for could not be found."
    """
    short = entity_class.__name__.lower()
    return EntityNotFoundException(
        entity_class.__name__,
        value,
        field=field,
        message=f"The {short} you were looking for could not be found.",
    )


class NotFoundFactoryRegistry:
    """Holds the process-wide default factory with an explicit set/reset lifecycle."""

    def __init__(self) -> None:
        self._factory: NotFoundFactory | None = None

    def set(self, factory: NotFoundFactory | None) -> None:
        """Install factory as the default (None is the same as reset())."""
        self._factory = factory

    def reset(self) -> None:
        """Forget any installed factory."""
        self._factory = None

    def get(self) -> NotFoundFactory:
        """Return the installed factory, or default_not_found_factory."""
        return self._factory or default_not_found_factory


not_found_factories = NotFoundFactoryRegistry()

"""Cache key builders. Single place for key format.

Entity keys: "<type>:<id>", e.g. "post:1".
Field keys map a field value to a primary key: "<type>-<field>-id:<md5>",
e.g. "user-username-id:5f4dcc3b...". The value is hashed so any value
(spaces, separators, long text) yields a short stable key.
"""

import hashlib
from typing import Any

from cachedrepo.core.constants import CACHE_KEY_SEP, FIELD_KEY_SEP, FIELD_KEY_SUFFIX


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains the cache key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty or contains CACHE_KEY_SEP.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must not be empty")
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def hash_value(value: Any) -> str:
    """Return the md5 hex digest of str(value)."""
    return hashlib.md5(str(value).encode("utf-8"), usedforsecurity=False).hexdigest()


def entity_key(entity_type: str, entity_id: Any) -> str:
    """Cache key for an entity by primary key."""
    _validate_key_component(entity_type, "entity_type")
    return f"{entity_type.lower()}{CACHE_KEY_SEP}{entity_id}"


def field_key(entity_type: str, field: str, value: Any) -> str:
    """Cache key for the primary key of the entity whose field equals value."""
    _validate_key_component(entity_type, "entity_type")
    _validate_key_component(field, "field")
    prefix = FIELD_KEY_SEP.join((entity_type, field, FIELD_KEY_SUFFIX)).lower()
    return f"{prefix}{CACHE_KEY_SEP}{hash_value(value)}"

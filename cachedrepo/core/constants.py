"""Core constants: cache key structure and cached marker values."""

# "<entity type>:<primary key>"
CACHE_KEY_SEP = ":"

# "<entity type>-<field>-id:<hashed value>"
FIELD_KEY_SEP = "-"
FIELD_KEY_SUFFIX = "id"

# Cached in place of an entity (or primary key) confirmed absent from the database.
NEGATIVE_MARKER = False

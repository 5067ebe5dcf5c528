"""Logging for the repositories and cache stores.

The library only creates named loggers; handlers are the host's business.
setup_logging() is a convenience for scripts and tests.
"""

import logging
import sys

from cachedrepo.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-key hit/miss lines are only wanted when debugging.
_CACHE_LOGGERS = (
    "cachedrepo.infrastructure.cache.memory_cache",
    "cachedrepo.infrastructure.cache.redis_cache",
)


def setup_logging(settings: Settings | None = None) -> None:
    """Configure root logging to stdout.

    Level is DEBUG when settings.debug is True, otherwise INFO. SQL
    statements are logged only when settings.database_echo is set.
    """
    settings = settings or get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )
    for name in _CACHE_LOGGERS:
        logging.getLogger(name).setLevel(log_level)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name (usually __name__)."""
    return logging.getLogger(name)

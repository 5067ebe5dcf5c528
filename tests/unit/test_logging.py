"""Tests for logging setup."""

import logging
from unittest.mock import patch

import pytest

from cachedrepo.core.config import Settings
from cachedrepo.shared.telemetry import get_logger, setup_logging


@pytest.fixture
def basic_config():
    with patch("cachedrepo.shared.telemetry.logging.logging.basicConfig") as mock:
        yield mock
    logging.getLogger("sqlalchemy.engine").setLevel(logging.NOTSET)


def test_get_logger_returns_named_logger() -> None:
    assert get_logger("cachedrepo.test").name == "cachedrepo.test"


def test_debug_enables_debug_level(basic_config) -> None:
    setup_logging(Settings(_env_file=None, debug=True))
    assert basic_config.call_args.kwargs["level"] == logging.DEBUG
    assert (
        logging.getLogger("cachedrepo.infrastructure.cache.redis_cache").level
        == logging.DEBUG
    )


def test_default_level_is_info(basic_config) -> None:
    setup_logging(Settings(_env_file=None))
    assert basic_config.call_args.kwargs["level"] == logging.INFO


def test_sql_echo_follows_database_echo(basic_config) -> None:
    setup_logging(Settings(_env_file=None, database_echo=True))
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
    setup_logging(Settings(_env_file=None))
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

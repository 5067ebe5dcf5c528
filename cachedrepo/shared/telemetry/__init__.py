"""Telemetry: logging setup shared by all modules."""

from cachedrepo.shared.telemetry.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]

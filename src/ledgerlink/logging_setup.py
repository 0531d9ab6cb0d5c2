"""Logging configuration for the ledgerlink command line."""

import logging
import os
import sys

LOG_LEVEL_ENV = "LEDGERLINK_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def resolve_level(level: str | None = None) -> int:
    """Turn a level name into a logging level.

    Falls back to ``LEDGERLINK_LOG_LEVEL`` and then WARNING; unknown names
    also give WARNING.
    """
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def configure_logging(level: str | None = None) -> None:
    """Send ``ledgerlink`` log records to stderr at the given level."""
    logger = logging.getLogger("ledgerlink")
    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolve_level(level))
    logger.propagate = False

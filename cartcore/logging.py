"""
Logging for cartcore.

All cartcore loggers hang off the "cartcore" package logger, which gets a
single stdout handler the first time this module is imported. Applications
embedding the engine can still attach their own handlers to it.

Usage:
    from cartcore.logging import get_logger
    logger = get_logger(__name__)

    logger.debug(f"Added item {sanitize_id_for_logging(item_id)}")
"""

import logging
import os
import sys
from functools import cache

PACKAGE_LOGGER = "cartcore"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# Longest item id / session key fragment written to logs
ID_LOG_LENGTH = 8


def _level_from_env() -> int:
    """CART_LOG_LEVEL, falling back to LOG_LEVEL, then INFO."""
    level_name = os.environ.get("CART_LOG_LEVEL") or os.environ.get("LOG_LEVEL") or "INFO"
    return getattr(logging, level_name.upper(), logging.INFO)


def _configure_package_logger() -> logging.Logger:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.handlers:
        return package_logger

    level = _level_from_env()
    package_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    # No timestamps on Vercel
    is_production = os.environ.get("VERCEL") == "1"
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if is_production else LOG_FORMAT))

    package_logger.addHandler(handler)
    package_logger.propagate = False

    # Upstash talks over httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return package_logger


_configure_package_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    """
    Logger for a cartcore module.

    Names outside the package are nested under it, so every cart log line
    goes through the package handler.
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def _escape(value: str) -> str:
    # CWE-117: caller data must not be able to start a new log line
    return value.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t").replace("\x00", "")


def _clip(value: str, limit: int, suffix: str = "") -> str:
    return value if len(value) <= limit else value[:limit] + suffix


def sanitize_id_for_logging(id_value) -> str:
    """
    Item id or session key, escaped and cut to its first 8 characters.

    Ids of 0 are logged as "0"; only None and "" become "N/A".
    """
    if id_value is None or id_value == "":
        return "N/A"
    return _clip(_escape(str(id_value)), ID_LOG_LENGTH)


def sanitize_string_for_logging(value, max_length: int = 50) -> str:
    """Item or condition name, escaped and cut to max_length with "..."."""
    if not value:
        return "N/A"
    return _clip(_escape(str(value)), max_length, "...")


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "PACKAGE_LOGGER",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]

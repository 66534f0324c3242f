"""Logger configuration for the bodycapture package.

All modules log through ``logging.getLogger(__name__)``; this module only
configures the package-level ``bodycapture`` logger.
"""

from __future__ import annotations

import logging
import sys
from typing import Literal

LogLevel = Literal["silent", "error", "warn", "info", "debug"]

PACKAGE_LOGGER_NAME = "bodycapture"

_LEVELS: dict[str, int] = {
    "silent": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

_current_level: LogLevel = "info"
_handler: logging.Handler | None = None


def configure_logger(log_level: LogLevel = "info", prefix: str = "BodyCapture") -> logging.Logger:
    """Configure the package logger.

    Calling this more than once replaces the previously installed handler.

    Args:
        log_level: One of silent, error, warn, info, debug
        prefix: Text shown in brackets in front of every message

    Returns:
        The package logger
    """
    global _handler

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if _handler is not None:
        package_logger.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(f"[{prefix}] %(levelname)s %(message)s"))
    package_logger.addHandler(_handler)
    package_logger.propagate = False

    set_log_level(log_level)
    return package_logger


def set_log_level(level: LogLevel) -> None:
    """Set the level of the package logger."""
    global _current_level

    if level not in _LEVELS:
        raise ValueError(f"Unknown log level: {level!r}")
    _current_level = level
    logging.getLogger(PACKAGE_LOGGER_NAME).setLevel(_LEVELS[level])


def get_log_level() -> LogLevel:
    return _current_level

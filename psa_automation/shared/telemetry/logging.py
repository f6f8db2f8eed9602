"""Logging configuration for the automation engine."""

import logging
import sys

from psa_automation.core.config import get_settings

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure process-wide logging to stdout.

    Level precedence: explicit argument, then DEBUG when settings.debug
    is True, then settings.log_level.

    Args:
        level: Optional level name (e.g. "WARNING") overriding settings.
    """
    settings = get_settings()
    if level is None:
        level = "DEBUG" if settings.debug else settings.log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=_LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)

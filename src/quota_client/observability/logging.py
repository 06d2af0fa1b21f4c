"""Shared logging utilities for consistent client observability.

All client loggers are children of the `quota_client` logger, which owns the
single stream handler. Applications that configure logging themselves can
call `set_log_level()` or attach their own handlers to that logger.

Usage example:
    from quota_client.observability.logging import get_logger

    logger = get_logger("quota_client.application.executor")
    logger.warning("Retrying %s in %.2fs", operation_name, delay)
"""

from __future__ import annotations

import logging
import time

ROOT_LOGGER_NAME = "quota_client"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)
        formatter.converter = time.gmtime
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(logging.INFO)
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a client logger that writes UTC timestamps through the package handler.

    Args:
        name: Logger name. Names outside the `quota_client` namespace are
            nested under it so they share the handler.
    """
    root = _configure_root()
    if name == ROOT_LOGGER_NAME:
        return root
    if not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_log_level(level: int | str) -> None:
    """Set the level for every client logger at once."""
    _configure_root().setLevel(level.upper() if isinstance(level, str) else level)

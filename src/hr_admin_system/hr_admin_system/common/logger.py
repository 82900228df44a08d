"""Structured logging utilities."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional


_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the stdout handler once; every call applies the requested level."""

    global _LOGGER_INITIALIZED
    resolved_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    if not _LOGGER_INITIALIZED:
        logging.basicConfig(
            level=resolved_level,
            format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            stream=sys.stdout,
        )
        _LOGGER_INITIALIZED = True
    # basicConfig is a no-op when the root logger already has handlers.
    logging.getLogger().setLevel(resolved_level)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for the requested module; `configure_logging` sets it up."""
    return logging.getLogger(name)

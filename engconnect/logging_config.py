"""Logging configuration helpers for the service."""

from __future__ import annotations

import logging
from logging import Logger

from engconnect.config import get_settings


def configure_logging() -> Logger:
    """Configure basic logging for the service and return its package logger."""
    logging.basicConfig(
        level=getattr(logging, get_settings().log_level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("engconnect")

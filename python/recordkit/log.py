"""structlog setup."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from recordkit.config import DatabaseConfig


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog to write timestamped events to stderr.

    Args:
        level: Minimum level name, e.g. "DEBUG" or "WARNING"
        fmt: "console" for human readable output, "json" for one object per line
    """
    renderer = structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def configure_logging_from_config(config: DatabaseConfig) -> None:
    configure_logging(config.log_level, config.log_format)

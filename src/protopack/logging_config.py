"""
Structured logging configuration for protopack.

Modules log through ``structlog.get_logger()`` and bind a ``component``;
this module decides how those events are rendered. The CLI calls
``setup_logging()`` once at startup. Library users who never call it get
structlog's defaults.

Usage:
    from protopack.logging_config import setup_logging

    setup_logging("DEBUG")
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(level: str = "INFO") -> None:
    """Configure structlog for terminal output.

    Events go to stderr so command output on stdout stays clean. No
    timestamps: every command is short-lived and interactive.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

"""Logging setup (structlog).

Modules log key/value events through structlog.get_logger(__name__);
setup_logging() decides level and rendering once per process.
"""

import logging
import sys

import structlog


def setup_logging(level: str = "INFO", json: bool = False):
    """Configure structlog rendering to stderr.

    Args:
        level: Minimum level name ("DEBUG", "INFO", ...)
        json: Render JSON lines instead of the console format

    Returns:
        A bound logger for the caller
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    return structlog.get_logger()

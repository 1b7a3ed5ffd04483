"""
dupfinder - structlog configuration.

Centralised structlog setup for human-readable or JSON structured logs.

Usage:
    from dupfinder.config.logging import configure_logging

    # At CLI startup
    configure_logging()

    # In modules
    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("message", key=value)

Logs are written to stderr: stdout is reserved for reports (text/json/csv).
"""

import logging
import os
import sys
from typing import Optional, TextIO

import structlog
from structlog.types import EventDict, WrappedLogger

APP_NAME = "dupfinder"

LOG_LEVEL_ENV = "DUPFINDER_LOG_LEVEL"
LOG_FORMAT_ENV = "DUPFINDER_LOG_FORMAT"


def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the application name to every log event."""
    event_dict["app"] = APP_NAME
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    enable_colors: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure structlog for dupfinder.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, logs as JSON lines. If False, console renderer
        enable_colors: If True, colorise console logs
        stream: Output stream (default: stderr)

    Example:
        >>> configure_logging(level="DEBUG", json_format=True)
    """
    stream = stream or sys.stderr

    # Drop existing handlers so repeated configuration does not duplicate lines
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, level.upper()),
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=enable_colors))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def configure_from_env(verbose: bool = False, log_format: Optional[str] = None) -> None:
    """
    Configure logging from DUPFINDER_LOG_LEVEL / DUPFINDER_LOG_FORMAT.

    Args:
        verbose: Force DEBUG level
        log_format: "console" or "json"; overrides the environment
    """
    level = "DEBUG" if verbose else os.getenv(LOG_LEVEL_ENV, "INFO")
    fmt = log_format or os.getenv(LOG_FORMAT_ENV, "console")

    if level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level = "INFO"

    configure_logging(level=level, json_format=fmt == "json")

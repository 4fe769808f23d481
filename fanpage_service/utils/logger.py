"""
Structured logging configuration.

Wires structlog on top of the standard library logging module so that
every module can call ``get_logger(__name__)`` and emit key-value events.
Request-scoped values (request id, user id) are carried in contextvars and
merged into every event.
"""

import logging
import sys
from typing import Any

import structlog

_configured = False


def setup_logging(level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Log level name (DEBUG, INFO, ...)
        log_format: "json" for machine-readable output, "text" for console
    """
    global _configured

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind values into the logging context of the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop every value bound for the current task."""
    structlog.contextvars.clear_contextvars()


def is_configured() -> bool:
    return _configured

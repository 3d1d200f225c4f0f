"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from exabgpmon.config import settings


def add_log_level(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add log level to event dict."""
    event_dict["level"] = method_name.upper()
    return event_dict


def add_exporter_mode(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every record with the exporter mode (stream or standalone)."""
    event_dict.setdefault("mode", settings.exporter_mode)
    return event_dict


def configure_logging() -> structlog.BoundLogger:
    """
    Configure structured logging with JSON output to stderr.

    stdout is reserved: in stream mode ExaBGP reads the exporter's stdout
    as API commands, so nothing may be logged there.

    When Sentry is enabled via sentry_helper functions:
    - DEBUG: Not sent to Sentry (local only)
    - INFO: Captured as breadcrumbs only (provides context for errors)
    - ERROR/FATAL: Sent as Sentry issues
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Sentry first so its LoggingIntegration sees every record
    from exabgpmon.monitoring.sentry_helper import init_sentry

    sentry_enabled = init_sentry()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        add_exporter_mode,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger()
    if sentry_enabled:
        logger.info("sentry_logging_enabled", breadcrumbs="INFO+", issues="ERROR+")

    return logger  # type: ignore[no-any-return]


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


# Global logger instance
logger = configure_logging()

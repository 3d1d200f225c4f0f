"""Sentry integration helper functions.

Sentry is configured with LoggingIntegration, which captures records from
Python's logging module (which structlog writes to). This means:

1. All structlog logs at INFO+ level are sent to Sentry as breadcrumbs
2. All structlog logs at ERROR+ level are sent to Sentry as issues

The helpers below add structured context for the events the exporter cares
about: peer session state changes, undecodable input and exabgpcli failures.

Usage:
    from exabgpmon.monitoring.sentry_helper import capture_parse_error

    try:
        event = parse_event(line)
    except ExaBGPParseError as e:
        capture_parse_error(
            error_type="event_decode_error",
            source="stream",
            error_message=str(e),
            line=line,
            exception=e,
        )

Sentry Level Mapping (via LoggingIntegration):
    - DEBUG: Not sent to Sentry (local only)
    - INFO: Captured as breadcrumbs (provides context for errors)
    - ERROR: Captured as Sentry issues
"""

import logging as stdlib_logging
from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration

from exabgpmon.config import settings

logger = structlog.get_logger(__name__)

# Track if Sentry is enabled
_sentry_enabled = False
_sentry_sdk: Any = None

# Undecodable input is truncated to this many characters in logs and Sentry
MAX_LINE_EXCERPT = 512


def init_sentry() -> bool:
    """
    Initialize Sentry SDK if configured.

    Returns:
        True if Sentry was initialized, False otherwise
    """
    global _sentry_enabled, _sentry_sdk

    if not settings.sentry_dsn:
        logger.debug("sentry_disabled")
        return False

    sentry_logging = LoggingIntegration(
        level=stdlib_logging.INFO,  # INFO+ as breadcrumbs
        event_level=stdlib_logging.ERROR,  # ERROR+ as issues
    )

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        max_breadcrumbs=100,
        integrations=[sentry_logging],
    )

    _sentry_sdk = sentry_sdk
    _sentry_enabled = True
    logger.info("sentry_initialized", environment=settings.sentry_environment)
    return True


def is_sentry_enabled() -> bool:
    """Check if Sentry is enabled."""
    return _sentry_enabled


def _excerpt(line: bytes | str | None) -> str | None:
    if line is None:
        return None
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="backslashreplace")
    return line[:MAX_LINE_EXCERPT]


def log_peer_state_change(
    peer_ip: str, peer_asn: int, state: str, reason: str = ""
) -> None:
    """
    Log a BGP session state change (sent to Sentry as breadcrumb).

    Session flaps are normal operational events, not errors, so they are
    logged at INFO.

    Args:
        peer_ip: BGP peer IP address
        peer_asn: BGP peer ASN
        state: New session state (up, down, connected, ...)
        reason: Reason supplied by ExaBGP, usually only on down
    """
    log_data: dict[str, Any] = {
        "peer_ip": peer_ip,
        "peer_asn": peer_asn,
        "state": state,
    }
    if reason:
        log_data["reason"] = reason

    logger.info("peer_state_changed", **log_data)


def log_parse_error(
    error_type: str,
    source: str,
    error_message: str,
    line: bytes | str | None = None,
) -> None:
    """
    Log parse error to stderr (sent to Sentry as issue).

    Args:
        error_type: Type of error (event_decode_error, rib_parse_error, ...)
        source: Where the input came from (stream, adj-rib, neighbor-summary)
        error_message: Error message
        line: Offending input line (optional, truncated)
    """
    log_data = {
        "error_type": error_type,
        "source": source,
        "error": error_message,
    }
    excerpt = _excerpt(line)
    if excerpt:
        log_data["line"] = excerpt

    logger.error("parse_error", **log_data)


def log_cli_error(
    command: str, error_message: str, returncode: int | None = None
) -> None:
    """
    Log exabgpcli failure (sent to Sentry as issue).

    Args:
        command: Command line that failed
        error_message: Error message or captured stderr
        returncode: Process exit status, None on timeout
    """
    log_data: dict[str, Any] = {
        "command": command,
        "error": error_message,
    }
    if returncode is not None:
        log_data["returncode"] = returncode

    logger.error("exabgpcli_error", **log_data)


def capture_parse_error(
    error_type: str,
    source: str,
    error_message: str,
    line: bytes | str | None = None,
    exception: Exception | None = None,
    peer_ip: str | None = None,
) -> None:
    """
    Capture parse error to both stderr and Sentry with exception tracking.

    Args:
        error_type: Type of error (event_decode_error, rib_parse_error, ...)
        source: Where the input came from (stream, adj-rib, neighbor-summary)
        error_message: Error message
        line: Offending input line (optional, truncated)
        exception: Exception object to capture in Sentry (optional)
        peer_ip: Peer the input belonged to, when known
    """
    log_parse_error(error_type, source, error_message, line)

    if not _sentry_sdk:
        return

    excerpt = _excerpt(line)
    if exception:
        with _sentry_sdk.push_scope() as scope:
            scope.set_tag("error_type", error_type)
            scope.set_tag("source", source)
            if peer_ip:
                scope.set_tag("peer_ip", peer_ip)
            if excerpt:
                scope.set_context("input", {"line": excerpt})
            _sentry_sdk.capture_exception(exception)
    else:
        extras = {"error_type": error_type, "source": source}
        if excerpt:
            extras["line"] = excerpt
        _sentry_sdk.capture_message(
            f"{error_type} from {source}: {error_message}",
            level="error",
            extras=extras,
        )

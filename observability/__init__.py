"""
Content Store - Observability Package

Structured logging with OpenTelemetry trace context. Errors record
themselves on the active span (see ``core.errors``); this package makes the
same trace and span ids appear on every log line.

Usage:
    from observability import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)
    logger.info("Post published", slug="hello-world")
"""
from observability.logging import (
    LogContext,
    LoggingConfig,
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "LogContext",
    "bind_context",
    "clear_context",
]

"""
Content Store - Structured Logging with Trace Context

Integrates structlog with OpenTelemetry trace context propagation so every
repository log line can be correlated with the request trace that caused it.

Features:
- Structured JSON logging for log aggregation
- Automatic trace context injection (trace_id, span_id)
- Stdlib loggers (``contentstore.db.*``) routed through the same handlers
- Configurable log levels and output formats

Usage:
    from observability.logging import setup_logging, get_logger

    setup_logging(LoggingConfig(level="INFO", json_format=True))

    logger = get_logger(__name__)
    logger.info("Page created", page_id="page:about", backend="couchdb")
"""
from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from opentelemetry import trace
from structlog.types import EventDict, WrappedLogger

_configured: bool = False

# Libraries whose INFO output drowns repository logs.
NOISY_LOGGERS = ("httpx", "httpcore", "asyncpg", "sqlalchemy.engine", "opentelemetry", "asyncio")


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    service_name: str = field(
        default_factory=lambda: os.getenv("SERVICE_NAME", "contentstore")
    )
    service_version: str = "0.1.0"
    level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    json_format: bool = field(
        default_factory=lambda: os.getenv("LOG_FORMAT", "json").lower() == "json"
    )
    enable_trace_context: bool = True
    log_to_console: bool = True
    log_to_file: bool = field(
        default_factory=lambda: os.getenv("LOG_TO_FILE", "false").lower() == "true"
    )
    log_file_path: Path = field(
        default_factory=lambda: Path(os.getenv("LOG_FILE", "./logs/contentstore.log"))
    )
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )


def _span_ids() -> Optional[tuple]:
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        if ctx.is_valid:
            return format(ctx.trace_id, "032x"), format(ctx.span_id, "016x")
    return None


def add_trace_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """
    Structlog processor that adds OpenTelemetry trace context to log events.
    """
    ids = _span_ids()
    if ids:
        event_dict["trace_id"], event_dict["span_id"] = ids
    return event_dict


def add_service_context(
    service_name: str,
    service_version: str,
    environment: str,
) -> structlog.types.Processor:
    """Create a processor that stamps service identity on every event."""

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        event_dict["version"] = service_version
        event_dict["environment"] = environment
        return event_dict

    return processor


def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add ISO8601 timestamp."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def format_exception(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Render ContentStoreError-style exceptions as structured fields."""
    exc_info = event_dict.pop("exc_info", None)
    if isinstance(exc_info, tuple):
        exc_info = exc_info[1]
    if isinstance(exc_info, BaseException):
        event_dict["exception"] = {
            "type": type(exc_info).__name__,
            "message": str(exc_info),
            "code": getattr(exc_info, "error_code", None),
        }
    return event_dict


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure structlog and stdlib logging once per process.

    Example:
        >>> setup_logging(LoggingConfig(level="DEBUG", json_format=False))
    """
    global _configured

    if _configured:
        return

    config = config or LoggingConfig()

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(config.service_name, config.service_version, config.environment),
        add_timestamp,
    ]

    if config.enable_trace_context:
        processors.append(add_trace_context)

    processors.extend([
        format_exception,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ])

    if config.json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configure_stdlib_logging(config)

    _configured = True


def _configure_stdlib_logging(config: LoggingConfig) -> None:
    """Configure Python standard library logging."""
    level = getattr(logging, config.level, logging.INFO)
    handlers: list[logging.Handler] = []

    if config.log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        if config.json_format:
            console_handler.setFormatter(_JsonFormatter())
        else:
            console_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
        handlers.append(console_handler)

    if config.log_to_file:
        from logging.handlers import RotatingFileHandler

        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(_JsonFormatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class _JsonFormatter(logging.Formatter):
    """JSON formatter for stdlib logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        ids = _span_ids()
        if ids:
            log_record["trace_id"], log_record["span_id"] = ids

        if record.exc_info:
            log_record["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_record, default=str)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Loggers are lazy proxies; they pick up the configuration from
    ``setup_logging`` whenever it runs.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Post published", slug="hello-world")
    """
    return structlog.get_logger(name)


def shutdown_logging() -> None:
    """Flush handlers and allow ``setup_logging`` to run again."""
    global _configured

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.flush()

    structlog.reset_defaults()
    _configured = False


class LogContext:
    """
    Context manager for adding contextual information to all logs.

    Example:
        >>> with LogContext(backend="postgres", operation="migrate"):
        ...     logger.info("Copying pages")
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


def bind_context(**kwargs: Any) -> None:
    """Bind contextual variables to all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound contextual variables."""
    structlog.contextvars.clear_contextvars()

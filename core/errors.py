"""
Content Store - Unified Error Handling

One error taxonomy shared by both storage backends so callers can branch on
the kind of failure instead of on backend-specific exceptions.

Features:
- Hierarchical exception classes with context preservation
- Error kinds (NotFound, Conflict, InvalidArgument, Internal)
- Structured error context for debugging
- OpenTelemetry integration for error tracing
"""

from __future__ import annotations

import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


class ErrorSeverity(Enum):
    """Error severity levels for prioritized handling."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorKind(Enum):
    """Backend-independent classification of a storage failure."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_ARGUMENT = "invalid_argument"
    INTERNAL = "internal"


class ConflictReason(Enum):
    """Why a write was rejected."""

    ALREADY_EXISTS = "already_exists"
    STALE_REVISION = "stale_revision"


@dataclass
class ErrorContext:
    """Structured context for error debugging and tracing."""

    operation: str
    component: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    identifier: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            "operation": self.operation,
            "component": self.component,
            "timestamp": self.timestamp.isoformat(),
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "identifier": self.identifier,
            "metadata": self.metadata,
            "stack_trace": self.stack_trace,
        }

    @classmethod
    def from_current_span(
        cls,
        operation: str,
        component: str,
        **kwargs: Any
    ) -> "ErrorContext":
        """Create context from current OpenTelemetry span."""
        span = trace.get_current_span()
        trace_id = None
        span_id = None

        if span and span.is_recording():
            ctx = span.get_span_context()
            if ctx.is_valid:
                trace_id = format(ctx.trace_id, "032x")
                span_id = format(ctx.span_id, "016x")

        return cls(
            operation=operation,
            component=component,
            trace_id=trace_id,
            span_id=span_id,
            stack_trace=traceback.format_exc(),
            **kwargs
        )


class ContentStoreError(Exception):
    """
    Base exception for all content store errors.

    Provides:
    - Structured error context
    - Error kind and severity level
    - Chained exception support
    - OpenTelemetry span recording
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "CONTENT_STORE_ERROR"
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[BaseException] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.severity = severity or self.default_severity
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now(timezone.utc)

        self._record_to_span()

    def _record_to_span(self) -> None:
        """Record exception to current OpenTelemetry span."""
        span = trace.get_current_span()
        if span and span.is_recording():
            span.set_status(Status(StatusCode.ERROR, self.message))
            span.record_exception(self)
            span.set_attribute("error.code", self.error_code)
            span.set_attribute("error.kind", self.kind.value)
            span.set_attribute("error.severity", self.severity.value)
            if self.context:
                span.set_attribute("error.component", self.context.component)
                span.set_attribute("error.operation", self.context.operation)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "kind": self.kind.value,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.context:
            parts.append(f" (operation: {self.context.operation}")
            if self.context.identifier:
                parts.append(f", id: {self.context.identifier}")
            parts.append(")")
        if self.cause:
            parts.append(f" [caused by: {self.cause}]")
        return "".join(parts)

    def with_context(self, **kwargs: Any) -> "ContentStoreError":
        """Add additional context to the error."""
        if self.context:
            self.context.metadata.update(kwargs)
        else:
            self.context = ErrorContext(
                operation="unknown",
                component="unknown",
                metadata=kwargs
            )
        return self


class NotFoundError(ContentStoreError):
    """Entity missing by id, slug, filename or email."""

    error_code = "NOT_FOUND"
    kind = ErrorKind.NOT_FOUND
    default_severity = ErrorSeverity.WARNING

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        identifier: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.entity_type = entity_type
        self.identifier = identifier


class ConflictError(ContentStoreError):
    """Unique-constraint violation or stale-revision write."""

    error_code = "CONFLICT"
    kind = ErrorKind.CONFLICT
    default_severity = ErrorSeverity.WARNING

    def __init__(
        self,
        message: str,
        reason: ConflictReason = ConflictReason.ALREADY_EXISTS,
        entity_type: Optional[str] = None,
        identifier: Optional[str] = None,
        constraint: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reason = reason
        self.entity_type = entity_type
        self.identifier = identifier
        self.constraint = constraint


class InvalidArgumentError(ContentStoreError):
    """Caller supplied a value the store cannot accept."""

    error_code = "INVALID_ARGUMENT"
    kind = ErrorKind.INVALID_ARGUMENT
    default_severity = ErrorSeverity.WARNING

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field_name = field_name


class InternalError(ContentStoreError):
    """Unexpected store or driver failure."""

    error_code = "INTERNAL"
    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.backend = backend


class ConfigError(ContentStoreError):
    """Configuration-related errors."""

    error_code = "CONFIG_ERROR"
    kind = ErrorKind.INVALID_ARGUMENT
    default_severity = ErrorSeverity.CRITICAL

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.config_key = config_key


@contextmanager
def error_context(
    operation: str,
    component: str,
    identifier: Optional[str] = None,
    **metadata: Any,
) -> Iterator[None]:
    """
    Attach operation context to any error raised in the block.

    A ContentStoreError is re-raised unchanged apart from its context. Any
    other exception (socket errors, malformed stored data) is wrapped in an
    InternalError that keeps the original as its cause. Nothing is swallowed
    or retried.

    Usage:
        with error_context("get_by_slug", "pages.couchdb", identifier=slug):
            doc = await client.get(doc_id)
    """
    try:
        yield
    except ContentStoreError as exc:
        if exc.context is None or exc.context.operation == "unknown":
            previous = exc.context.metadata if exc.context else {}
            exc.context = ErrorContext.from_current_span(
                operation=operation,
                component=component,
                identifier=identifier,
                metadata={**previous, **metadata},
            )
        else:
            exc.context.metadata.setdefault("outer_operation", operation)
        raise
    except Exception as exc:
        raise InternalError(
            f"{component} {operation} failed: {exc}",
            backend=component.rpartition(".")[2],
            context=ErrorContext.from_current_span(
                operation=operation,
                component=component,
                identifier=identifier,
                metadata=dict(metadata),
            ),
            cause=exc,
        ) from exc

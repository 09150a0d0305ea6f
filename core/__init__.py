"""
Content Store - Core Module

Backend-independent foundations shared by every other package:
- Error taxonomy (NotFound, Conflict, InvalidArgument, Internal) with
  operation context and OpenTelemetry span recording
- Identifier helpers: composite ids, category/tag slugs, the search
  tokenizer and its PostgreSQL prefix tsquery

Nothing here imports from ``db`` or ``repositories``.

Usage:
    from core import ConflictError, error_context, make_document_id

    with error_context("create", "pages.couchdb", identifier="page:about"):
        ...
"""
from core.errors import (
    ConfigError,
    ConflictError,
    ConflictReason,
    ContentStoreError,
    ErrorContext,
    ErrorKind,
    ErrorSeverity,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    error_context,
)
from core.identifiers import (
    BLOG_POST,
    CONTACT,
    MEDIA,
    PAGE,
    USER,
    make_document_id,
    make_prefix_tsquery,
    natural_key,
    search_tokens,
    slugify_name,
)

__all__ = [
    # Errors
    "ContentStoreError",
    "NotFoundError",
    "ConflictError",
    "ConflictReason",
    "InvalidArgumentError",
    "InternalError",
    "ConfigError",
    "ErrorContext",
    "ErrorKind",
    "ErrorSeverity",
    "error_context",
    # Identifiers
    "PAGE",
    "BLOG_POST",
    "MEDIA",
    "USER",
    "CONTACT",
    "make_document_id",
    "natural_key",
    "slugify_name",
    "search_tokens",
    "make_prefix_tsquery",
]

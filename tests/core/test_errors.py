"""
Tests for core/errors.py - Unified Error Handling.
"""
import pytest


class TestErrorKinds:
    """Every storage failure maps onto one of four kinds."""

    @pytest.mark.parametrize("cls_name, kind", [
        ("NotFoundError", "not_found"),
        ("ConflictError", "conflict"),
        ("InvalidArgumentError", "invalid_argument"),
        ("InternalError", "internal"),
    ])
    def test_kind(self, cls_name, kind):
        import core.errors as errors

        error = getattr(errors, cls_name)("boom")

        assert error.kind.value == kind
        assert isinstance(error, errors.ContentStoreError)

    def test_conflict_defaults_to_already_exists(self):
        from core.errors import ConflictError, ConflictReason

        assert ConflictError("taken").reason == ConflictReason.ALREADY_EXISTS

    def test_to_dict(self):
        from core.errors import NotFoundError

        data = NotFoundError("page about not found", entity_type="page", identifier="about").to_dict()

        assert data["error_code"] == "NOT_FOUND"
        assert data["kind"] == "not_found"
        assert data["severity"] == "warning"
        assert data["context"] is None

    def test_str_includes_cause(self):
        from core.errors import InternalError

        error = InternalError("write failed", cause=OSError("disk full"))

        assert str(error) == "[INTERNAL] write failed [caused by: disk full]"

    def test_with_context_without_existing_context(self):
        from core.errors import InternalError

        error = InternalError("x").with_context(attempt=2)

        assert error.context.operation == "unknown"
        assert error.context.metadata == {"attempt": 2}


class TestErrorContext:
    """error_context decorates errors without swallowing them."""

    def test_attaches_operation(self):
        from core.errors import NotFoundError, error_context

        with pytest.raises(NotFoundError) as exc_info:
            with error_context("get_by_slug", "pages.couchdb", identifier="about", view="by_slug"):
                raise NotFoundError("missing")

        context = exc_info.value.context
        assert context.operation == "get_by_slug"
        assert context.component == "pages.couchdb"
        assert context.identifier == "about"
        assert context.metadata == {"view": "by_slug"}
        assert "(operation: get_by_slug, id: about)" in str(exc_info.value)

    def test_innermost_context_wins(self):
        from core.errors import ConflictError, error_context

        with pytest.raises(ConflictError) as exc_info:
            with error_context("update", "outer"):
                with error_context("put", "inner"):
                    raise ConflictError("stale")

        context = exc_info.value.context
        assert context.operation == "put"
        assert context.metadata["outer_operation"] == "update"

    def test_keeps_metadata_added_earlier(self):
        from core.errors import InternalError, error_context

        with pytest.raises(InternalError) as exc_info:
            with error_context("list", "media.postgres"):
                raise InternalError("boom").with_context(batch=3)

        assert exc_info.value.context.operation == "list"
        assert exc_info.value.context.metadata == {"batch": 3}

    def test_other_exceptions_become_internal(self):
        from core.errors import InternalError, error_context

        with pytest.raises(InternalError) as exc_info:
            with error_context("get", "pages.couchdb", identifier="page:about"):
                raise KeyError("slug")

        error = exc_info.value
        assert isinstance(error.cause, KeyError)
        assert error.__cause__ is error.cause
        assert error.backend == "couchdb"
        assert error.context.operation == "get"
        assert error.context.identifier == "page:about"

    def test_connection_refused_becomes_internal(self):
        from core.errors import InternalError, error_context

        with pytest.raises(InternalError, match="connection refused"):
            with error_context("list", "media.postgres"):
                raise ConnectionRefusedError("connection refused")

    def test_cancellation_is_not_wrapped(self):
        import asyncio

        from core.errors import error_context

        with pytest.raises(asyncio.CancelledError):
            with error_context("get", "pages.couchdb"):
                raise asyncio.CancelledError()

"""
Tests for db/interfaces.py - listing options and capability tags.
"""
import pytest


class TestListOptions:

    def test_defaults(self):
        from db.interfaces import DEFAULT_LIMIT, ListOptions

        options = ListOptions()

        assert options.limit == DEFAULT_LIMIT
        assert options.offset == 0
        assert options.descending

    @pytest.mark.parametrize("kwargs, field", [
        ({"limit": 0}, "limit"),
        ({"skip": -1}, "skip"),
    ])
    def test_rejects_invalid_window(self, kwargs, field):
        from core.errors import InvalidArgumentError
        from db.interfaces import ListOptions

        with pytest.raises(InvalidArgumentError) as exc_info:
            ListOptions(**kwargs)

        assert exc_info.value.field_name == field

    def test_next_page(self):
        from db.interfaces import ListOptions, SortOrder

        page = ListOptions(limit=10, skip=20, sort_order=SortOrder.ASC).next_page()

        assert (page.limit, page.skip, page.sort_order) == (10, 30, SortOrder.ASC)


class TestCapabilityTags:
    """Each backend declares its update and concurrency behaviour."""

    @pytest.mark.parametrize("module, prefix", [
        ("repositories.couchdb", "CouchDB"),
        ("repositories.postgres", "Postgres"),
    ])
    def test_every_repository_declares_tags(self, module, prefix):
        import importlib

        from db.interfaces import ConcurrencyControl, UpdateSemantics

        package = importlib.import_module(module)
        for name in ("Page", "BlogPost", "Media", "User", "Contact"):
            repository = getattr(package, f"{prefix}{name}Repository")
            assert isinstance(repository.update_semantics, UpdateSemantics)
            assert isinstance(repository.concurrency_control, ConcurrencyControl)
            assert repository.backend in ("couchdb", "postgres")

    def test_backends_differ_as_documented(self):
        from db.interfaces import ConcurrencyControl, UpdateSemantics
        from repositories.couchdb import CouchDBPageRepository
        from repositories.postgres import PostgresPageRepository

        assert CouchDBPageRepository.update_semantics == UpdateSemantics.FULL_REPLACE
        assert CouchDBPageRepository.concurrency_control == ConcurrencyControl.REVISION
        assert PostgresPageRepository.update_semantics == UpdateSemantics.PARTIAL_PATCH
        assert PostgresPageRepository.concurrency_control == ConcurrencyControl.NONE

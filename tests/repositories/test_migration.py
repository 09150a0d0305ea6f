"""
Tests for repositories/migration.py - copying a CouchDB store into PostgreSQL.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from domain.entities import (
    BlogPost,
    ContactSubmission,
    Media,
    Page,
    PageStatus,
    User,
    UserRole,
)


def _at(day: int) -> datetime:
    return datetime(2024, 2, day, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def source(couch_client):
    from repositories.factory import build_repositories
    return build_repositories(couch_client)


@pytest.fixture
def target(fake_queries, postgres_client):
    from repositories.factory import build_repositories
    return build_repositories(postgres_client)


async def seed(source) -> ContactSubmission:
    """One of each entity; seven in total."""
    await source.users.create(User(email="ada@example.com", role=UserRole.ADMIN, created_at=_at(1)))
    await source.pages.create(Page(slug="about", title="About", created_at=_at(2)))
    await source.pages.create(Page(slug="contact", title="Contact", created_at=_at(3)))
    await source.pages.create(Page(slug="pricing", title="Pricing", created_at=_at(4)))
    await source.blog_posts.create(BlogPost(
        slug="hello",
        title="Hello",
        status=PageStatus.PUBLISHED,
        published_at=_at(5),
        categories=["Python"],
        tags=["Async IO"],
        author="user:ada@example.com",
        created_at=_at(5),
    ))
    await source.media.create(Media(filename="logo.png", uploaded_by="ada@example.com", created_at=_at(6)))
    return await source.contacts.create(ContactSubmission(
        name="Grace", email="grace@example.com", message="Hi", created_at=_at(7),
    ))


class TestReport:

    def test_totals(self):
        from repositories.migration import MigrationReport

        report = MigrationReport()
        report.for_entity("pages").copied = 2
        report.for_entity("users").skipped = 1
        report.for_entity("media").failed = 1

        assert (report.copied, report.skipped, report.failed) == (2, 1, 1)
        assert not report.succeeded
        assert report.for_entity("pages").seen == 2
        assert report.to_dict()["entities"]["media"]["failed"] == 1


class TestRepositoryMigrator:

    @pytest.mark.asyncio
    async def test_copies_every_entity(self, source, target, fake_queries):
        from repositories.migration import ENTITY_ORDER, RepositoryMigrator

        seeded = await seed(source)

        report = await RepositoryMigrator(source, target, batch_size=2).migrate_all()

        assert report.succeeded
        assert list(report.entities) == list(ENTITY_ORDER)
        assert {name: r.copied for name, r in report.entities.items()} == {
            "users": 1, "pages": 3, "blog_posts": 1, "media": 1, "contacts": 1,
        }

        post = await target.blog_posts.get_by_slug("hello")
        assert post.categories == ["Python"]
        assert post.tags == ["Async IO"]
        assert post.created_at == _at(5)
        assert post.is_published()

        contact = await target.contacts.get_by_id(seeded.id)
        assert contact.email == "grace@example.com"

        page = await target.pages.get_by_slug("pricing")
        assert page.rev is None
        assert page.created_at == _at(4)

    @pytest.mark.asyncio
    async def test_rerun_skips_existing(self, source, target):
        from repositories.migration import RepositoryMigrator

        await seed(source)

        migrator = RepositoryMigrator(source, target)
        await migrator.migrate_all()

        report = await migrator.migrate_all()

        assert report.copied == 0
        assert report.skipped == 7
        assert report.succeeded

    @pytest.mark.asyncio
    async def test_rerun_skips_legacy_contact_ids(self, source, target, fake_queries):
        from repositories.migration import RepositoryMigrator

        legacy_id = "contact:1700000000000000000"
        await source.contacts.create(ContactSubmission(
            id=legacy_id, name="Linus", email="linus@example.com", message="Hej", created_at=_at(8),
        ))

        migrator = RepositoryMigrator(source, target)
        first = await migrator.migrate_all()
        second = await migrator.migrate_all()

        assert first.entities["contacts"].copied == 1
        assert second.entities["contacts"].copied == 0
        assert second.entities["contacts"].skipped == 1
        assert len(fake_queries.contacts.rows) == 1
        assert (await target.contacts.get_by_id(legacy_id)).name == "Linus"

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, source, target, fake_queries):
        from repositories.migration import RepositoryMigrator

        await seed(source)

        report = await RepositoryMigrator(source, target).migrate_all(dry_run=True)

        assert report.dry_run
        assert report.copied == 7
        assert not fake_queries.pages.rows
        assert not fake_queries.called("insert_user")

    @pytest.mark.asyncio
    async def test_failures_are_reported(self, source, target):
        from core.errors import InternalError
        from repositories.migration import MigrationReport, RepositoryMigrator

        await seed(source)

        target.pages.create = AsyncMock(side_effect=InternalError("boom", backend="postgres"))
        report = MigrationReport()

        entity_report = await RepositoryMigrator(source, target).migrate_entity("pages", report)

        assert entity_report.failed == 3
        assert entity_report.failures == ["page:about", "page:contact", "page:pricing"]
        assert not report.succeeded

    def test_same_backend_warns(self, source):
        from repositories.migration import RepositoryMigrator

        with patch("repositories.migration.logger") as logger:
            RepositoryMigrator(source, source)

        logger.warning.assert_called_once()

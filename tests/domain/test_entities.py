"""
Tests for domain/entities.py.
"""
from datetime import datetime, timedelta, timezone

import pytest


NOW = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


class TestBlogPostPublication:
    """is_published needs published status AND a published_at not in the future."""

    @pytest.mark.parametrize("status, published_at, expected", [
        ("published", NOW - timedelta(minutes=1), True),
        ("published", NOW, True),
        ("published", NOW + timedelta(minutes=1), False),
        ("published", None, False),
        ("draft", NOW - timedelta(days=1), False),
        ("archived", NOW - timedelta(days=1), False),
        (None, NOW - timedelta(days=1), False),
    ])
    def test_is_published(self, status, published_at, expected):
        from domain.entities import BlogPost, PageStatus

        post = BlogPost(
            slug="hello",
            status=PageStatus(status) if status else None,
            published_at=published_at,
        )

        assert post.is_published(NOW) is expected

    def test_set_published_keeps_scheduled_date(self):
        from domain.entities import BlogPost, PageStatus

        scheduled = NOW + timedelta(days=7)
        post = BlogPost(slug="hello", published_at=scheduled)

        post.set_published(NOW)

        assert post.status == PageStatus.PUBLISHED
        assert post.published_at == scheduled
        assert not post.is_published(NOW)

    def test_set_published_stamps_now(self):
        from domain.entities import BlogPost

        post = BlogPost(slug="hello")
        post.set_published(NOW)

        assert post.published_at == NOW
        assert post.is_published(NOW)

    def test_set_draft(self):
        from domain.entities import BlogPost, PageStatus

        post = BlogPost(slug="hello", status=PageStatus.PUBLISHED, published_at=NOW)
        post.set_draft()

        assert post.status == PageStatus.DRAFT
        assert not post.is_published(NOW)

    def test_published_date(self):
        from domain.entities import BlogPost

        assert BlogPost(slug="a", published_at=NOW).published_date == "March 5, 2024"
        assert BlogPost(slug="a").published_date == ""


class TestContentAndMeta:

    def test_content_round_trip_through_dict(self):
        from domain.entities import Content, ContentBlock

        content = Content(blocks=[
            ContentBlock("heading", {"text": "Intro", "level": 2}),
            ContentBlock("paragraph", {"text": "Body"}),
        ])

        assert Content.from_dict(content.to_dict()) == content

    def test_empty_content(self):
        from domain.entities import Content, Meta

        assert Content.from_dict(None) == Content()
        assert Meta.from_dict({}) == Meta()

    def test_block_text_values_skip_non_strings(self):
        from domain.entities import ContentBlock

        block = ContentBlock("heading", {"text": "Intro", "level": 2})

        assert block.text_values() == ["Intro"]


class TestOtherEntities:

    def test_page_is_published(self):
        from domain.entities import Page, PageStatus

        assert Page(slug="about", status=PageStatus.PUBLISHED).is_published
        assert not Page(slug="about").is_published

    def test_media_new_sets_upload_url(self):
        from domain.entities import Media

        media = Media.new("cat.png", "Cat.PNG", "image/png", 1024, "user:a@example.com")

        assert media.url == "/uploads/cat.png"
        assert media.is_image

    def test_user_login_and_role(self):
        from domain.entities import User, UserRole

        user = User(email="a@example.com", role=UserRole.ADMIN)
        user.record_login(NOW)

        assert user.last_login_at == NOW
        assert user.is_admin

    @pytest.mark.parametrize("method, status", [
        ("mark_as_read", "read"),
        ("mark_as_replied", "replied"),
        ("mark_as_resolved", "resolved"),
        ("mark_as_spam", "spam"),
    ])
    def test_contact_status_transitions(self, method, status):
        from domain.entities import ContactSubmission

        submission = ContactSubmission(name="Ada", email="ada@example.com", message="Hi")
        getattr(submission, method)()

        assert submission.status.value == status

"""
Content Store - SQLAlchemy ORM Models

Relational schema for the PostgreSQL backend: users, pages, blog posts with
normalized categories/tags, media and contact submissions.

The ``search_tsv`` columns are generated by PostgreSQL. Their text is
lowercased and split on non ``[a-z0-9]`` characters before ``to_tsvector``
so the indexed lexemes match ``core.identifiers.search_tokens``.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    BigInteger,
    Column,
    Computed,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _search_vector(*parts: str) -> Computed:
    text = " || ' ' || ".join(f"coalesce({part}, '')" for part in parts)
    return Computed(
        f"to_tsvector('simple'::regconfig, "
        f"regexp_replace(lower({text}), '[^a-z0-9]+', ' ', 'g'))",
        persisted=True,
    )


_CONTENT_STRINGS = (
    "jsonb_path_query_array(content, "
    "'$.blocks[*].data.* ? (@.type() == \"string\")')::text"
)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


blog_post_categories = Table(
    "blog_post_categories",
    Base.metadata,
    Column("post_id", UUID(as_uuid=True), ForeignKey("blog_posts.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", UUID(as_uuid=True), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
    Column("position", Integer, nullable=False, default=0),
)

blog_post_tags = Table(
    "blog_post_tags",
    Base.metadata,
    Column("post_id", UUID(as_uuid=True), ForeignKey("blog_posts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", UUID(as_uuid=True), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    Column("position", Integer, nullable=False, default=0),
)


class UserRecord(TimestampMixin, Base):
    """Admin panel account."""
    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(20), default="editor", index=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"


class PageRecord(TimestampMixin, Base):
    """CMS page. ``content`` and ``meta`` keep the document-store JSON shape."""
    __tablename__ = "pages"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(255), unique=True)
    title: Mapped[str] = mapped_column(Text)
    content: Mapped[Dict[str, Any]] = mapped_column(JSONB, default=dict)
    meta: Mapped[Dict[str, Any]] = mapped_column(JSONB, default=dict)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    search_tsv: Mapped[Optional[str]] = mapped_column(
        TSVECTOR,
        _search_vector("title", "slug", "meta ->> 'title'", "meta ->> 'description'", _CONTENT_STRINGS),
    )

    __table_args__ = (
        Index("ix_pages_status_created", "status", "created_at"),
        Index("ix_pages_search_tsv", "search_tsv", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<Page {self.slug} ({self.status})>"


class CategoryRecord(TimestampMixin, Base):
    """Blog category, looked up by slug."""
    __tablename__ = "categories"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Category {self.slug}>"


class TagRecord(TimestampMixin, Base):
    """Blog tag, looked up by slug."""
    __tablename__ = "tags"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(255))

    def __repr__(self) -> str:
        return f"<Tag {self.slug}>"


class BlogPostRecord(TimestampMixin, Base):
    """Blog post with categories and tags normalized into junction tables."""
    __tablename__ = "blog_posts"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(255), unique=True)
    title: Mapped[str] = mapped_column(Text)
    excerpt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Dict[str, Any]] = mapped_column(JSONB, default=dict)
    meta: Mapped[Dict[str, Any]] = mapped_column(JSONB, default=dict)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    author: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    featured_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    search_tsv: Mapped[Optional[str]] = mapped_column(
        TSVECTOR,
        _search_vector(
            "title", "slug", "meta ->> 'title'", "meta ->> 'description'",
            "excerpt", _CONTENT_STRINGS,
        ),
    )

    # Read-only: junction rows are written with their position by Queries.
    # selectin keeps relationship access safe under AsyncSession.
    categories: Mapped[List[CategoryRecord]] = relationship(
        secondary=blog_post_categories,
        lazy="selectin",
        order_by=blog_post_categories.c.position,
        viewonly=True,
    )
    tags: Mapped[List[TagRecord]] = relationship(
        secondary=blog_post_tags,
        lazy="selectin",
        order_by=blog_post_tags.c.position,
        viewonly=True,
    )

    __table_args__ = (
        Index("ix_blog_posts_status_created", "status", "created_at"),
        Index("ix_blog_posts_published_at", "published_at"),
        Index("ix_blog_posts_search_tsv", "search_tsv", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<BlogPost {self.slug} ({self.status})>"


class MediaRecord(TimestampMixin, Base):
    """Uploaded file metadata."""
    __tablename__ = "media"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    filename: Mapped[str] = mapped_column(String(255), unique=True)
    original_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(127), nullable=True)
    size_bytes: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    alt_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    uploaded_by: Mapped[Optional[str]] = mapped_column(String(320), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Media {self.filename}>"


class ContactSubmissionRecord(TimestampMixin, Base):
    """Contact form submission."""
    __tablename__ = "contact_submissions"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True, index=True)
    company: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="new")
    search_tsv: Mapped[Optional[str]] = mapped_column(
        TSVECTOR,
        _search_vector("name", "email", "company", "message"),
    )

    __table_args__ = (
        Index("ix_contact_submissions_status_created", "status", "created_at"),
        Index("ix_contact_submissions_search_tsv", "search_tsv", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<ContactSubmission {self.id} ({self.status})>"

"""
Content Store - Domain Entities

Storage-agnostic records for the CMS: pages, blog posts, media, users and
contact submissions.

Conventions:
    - ``id`` is the external id (``page:{slug}`` etc.); callers treat it as
      opaque.
    - ``rev`` is the document revision on the document store and stays
      ``None`` on the relational store.
    - Timestamps are timezone-aware UTC.
    - Optional fields default to ``None``. ``create`` fills in the defaults
      (draft status, empty content, editor role, new contact). On a
      partial-patch backend a ``None`` field in an update means "keep the
      stored value"; on a full-replace backend it is stored as empty.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMERATIONS
# =============================================================================


class PageStatus(str, Enum):
    """Publication status shared by pages and blog posts."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class UserRole(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    AUTHOR = "author"
    VIEWER = "viewer"


class ContactStatus(str, Enum):
    """Triage status of a contact form submission."""
    NEW = "new"
    READ = "read"
    IN_PROGRESS = "in_progress"
    REPLIED = "replied"
    RESOLVED = "resolved"
    SPAM = "spam"


# =============================================================================
# VALUE OBJECTS
# =============================================================================


@dataclass
class ContentBlock:
    """A typed block of structured page content (heading, paragraph, ...)."""
    type: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "data": dict(self.data)}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ContentBlock":
        return cls(type=raw.get("type", ""), data=dict(raw.get("data") or {}))

    def text_values(self) -> List[str]:
        """String-valued fields of the block, used for search indexing."""
        return [value for value in self.data.values() if isinstance(value, str)]


@dataclass
class Content:
    """Ordered list of content blocks."""
    blocks: List[ContentBlock] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"blocks": [block.to_dict() for block in self.blocks]}

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "Content":
        if not raw:
            return cls()
        return cls(blocks=[ContentBlock.from_dict(b) for b in raw.get("blocks") or []])


@dataclass
class Meta:
    """SEO metadata."""
    title: str = ""
    description: str = ""
    keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "keywords": list(self.keywords),
        }

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "Meta":
        if not raw:
            return cls()
        return cls(
            title=raw.get("title") or "",
            description=raw.get("description") or "",
            keywords=list(raw.get("keywords") or []),
        )


@dataclass(frozen=True)
class TermCount:
    """A category or tag together with the number of published posts using it."""
    name: str
    slug: str
    post_count: int


BlogCategory = TermCount
BlogTag = TermCount


# =============================================================================
# ENTITIES
# =============================================================================


@dataclass
class Page:
    """A CMS page addressed by its unique slug."""
    slug: str
    title: Optional[str] = None
    content: Optional[Content] = None
    meta: Optional[Meta] = None
    status: Optional[PageStatus] = None
    id: Optional[str] = None
    rev: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_published(self) -> bool:
        return self.status == PageStatus.PUBLISHED


@dataclass
class BlogPost:
    """
    A blog post.

    ``published_at`` is distinct from ``created_at``: a post may be scheduled
    by giving it a future ``published_at`` while already in published status.
    """
    slug: str
    title: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[Content] = None
    meta: Optional[Meta] = None
    status: Optional[PageStatus] = None
    author: Optional[str] = None
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    featured_image: Optional[str] = None
    published_at: Optional[datetime] = None
    id: Optional[str] = None
    rev: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_published(self, now: Optional[datetime] = None) -> bool:
        """True only for published status with a published_at not in the future."""
        if self.status != PageStatus.PUBLISHED or self.published_at is None:
            return False
        return self.published_at <= (now or utcnow())

    def set_published(self, now: Optional[datetime] = None) -> None:
        self.status = PageStatus.PUBLISHED
        if self.published_at is None:
            self.published_at = now or utcnow()

    def set_draft(self) -> None:
        self.status = PageStatus.DRAFT

    @property
    def published_date(self) -> str:
        """Human-readable publication date, empty when unpublished."""
        if self.published_at is None:
            return ""
        published = self.published_at
        return f"{published:%B} {published.day}, {published.year}"


@dataclass
class Media:
    """Metadata of an uploaded file. The bytes live in external file storage."""
    filename: str
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None
    url: Optional[str] = None
    alt_text: Optional[str] = None
    uploaded_by: Optional[str] = None
    id: Optional[str] = None
    rev: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        filename: str,
        original_name: str,
        mime_type: str,
        size: int,
        uploaded_by: str,
        alt_text: Optional[str] = None,
    ) -> "Media":
        return cls(
            filename=filename,
            original_name=original_name,
            mime_type=mime_type,
            size=size,
            url=f"/uploads/{filename}",
            alt_text=alt_text,
            uploaded_by=uploaded_by,
        )

    @property
    def is_image(self) -> bool:
        return bool(self.mime_type and self.mime_type.startswith("image/"))


@dataclass
class User:
    """An admin panel account."""
    email: str
    name: Optional[str] = None
    password_hash: Optional[str] = None
    role: Optional[UserRole] = None
    id: Optional[str] = None
    rev: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def record_login(self, now: Optional[datetime] = None) -> None:
        self.last_login_at = now or utcnow()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass
class ContactSubmission:
    """A message sent through the marketing site's contact form."""
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None
    company: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    status: Optional[ContactStatus] = None
    id: Optional[str] = None
    rev: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def mark_as_read(self) -> None:
        self.status = ContactStatus.READ

    def mark_as_replied(self) -> None:
        self.status = ContactStatus.REPLIED

    def mark_as_resolved(self) -> None:
        self.status = ContactStatus.RESOLVED

    def mark_as_spam(self) -> None:
        self.status = ContactStatus.SPAM

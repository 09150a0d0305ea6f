"""
Content Store - Domain Module

Storage-agnostic entities of the CMS. Repositories in ``repositories``
persist these; nothing here knows which backend is active.

Usage:
    from domain import BlogPost, PageStatus

    post = BlogPost(slug="hello-world", title="Hello, World")
    post.set_published()
"""
from domain.entities import (
    BlogCategory,
    BlogPost,
    BlogTag,
    ContactStatus,
    ContactSubmission,
    Content,
    ContentBlock,
    Media,
    Meta,
    Page,
    PageStatus,
    TermCount,
    User,
    UserRole,
    utcnow,
)

__all__ = [
    # Enumerations
    "PageStatus",
    "UserRole",
    "ContactStatus",
    # Value objects
    "ContentBlock",
    "Content",
    "Meta",
    "TermCount",
    "BlogCategory",
    "BlogTag",
    # Entities
    "Page",
    "BlogPost",
    "Media",
    "User",
    "ContactSubmission",
    "utcnow",
]

"""CouchDB blog post repository."""
from dataclasses import replace
from typing import Any, Dict, List, Optional

from core.errors import error_context
from core.identifiers import BLOG_POST, make_document_id, slugify_name
from db.interfaces import IBlogPostRepository, ListOptions
from db.views import BLOG_POST_TYPE
from domain.entities import BlogPost, Content, Meta, PageStatus, TermCount, utcnow
from repositories.couchdb.base import (
    CouchDBRepository,
    enum_value,
    format_timestamp,
    optional_enum,
    parse_timestamp,
)


class CouchDBBlogPostRepository(CouchDBRepository, IBlogPostRepository):
    entity_type = BLOG_POST
    doc_type = BLOG_POST_TYPE
    design = "blog_posts"

    @staticmethod
    def to_document(post: BlogPost) -> Dict[str, Any]:
        return {
            "slug": post.slug,
            "title": post.title,
            "excerpt": post.excerpt,
            "content": post.content.to_dict() if post.content is not None else None,
            "meta": post.meta.to_dict() if post.meta is not None else None,
            "status": enum_value(post.status),
            "author": post.author,
            "categories": list(post.categories or []),
            "tags": list(post.tags or []),
            "featured_image": post.featured_image,
            "published_at": format_timestamp(post.published_at),
            "created_at": format_timestamp(post.created_at),
            "updated_at": format_timestamp(post.updated_at),
        }

    @staticmethod
    def from_document(doc: Dict[str, Any]) -> BlogPost:
        return BlogPost(
            slug=doc["slug"],
            title=doc.get("title"),
            excerpt=doc.get("excerpt"),
            content=Content.from_dict(doc.get("content")),
            meta=Meta.from_dict(doc.get("meta")),
            status=optional_enum(PageStatus, doc.get("status")),
            author=doc.get("author"),
            categories=list(doc.get("categories") or []),
            tags=list(doc.get("tags") or []),
            featured_image=doc.get("featured_image"),
            published_at=parse_timestamp(doc.get("published_at")),
            id=doc["_id"],
            rev=doc.get("_rev"),
            created_at=parse_timestamp(doc.get("created_at")),
            updated_at=parse_timestamp(doc.get("updated_at")),
        )

    def _to_posts(self, docs: List[Dict[str, Any]]) -> List[BlogPost]:
        return [self.from_document(doc) for doc in docs]

    async def create(self, post: BlogPost) -> BlogPost:
        post = replace(post)
        post.id = post.id or make_document_id(BLOG_POST, post.slug)
        with error_context("create", self.component, identifier=post.id):
            now = utcnow()
            post.created_at = post.created_at or now
            post.updated_at = post.updated_at or now
            if post.status is None:
                post.status = PageStatus.DRAFT
            if post.content is None:
                post.content = Content()
            if post.meta is None:
                post.meta = Meta()
            post.categories = list(post.categories or [])
            post.tags = list(post.tags or [])
            post.rev = await self._insert(post.id, self.to_document(post))
        self._logger.info("Blog post created", post_id=post.id)
        return post

    async def get_by_id(self, post_id: str) -> BlogPost:
        with error_context("get_by_id", self.component, identifier=post_id):
            return self.from_document(await self._fetch(post_id))

    async def get_by_slug(self, slug: str) -> BlogPost:
        with error_context("get_by_slug", self.component, identifier=slug):
            return self.from_document(await self._first_by_key("by_slug", slug))

    async def update(
        self, post: BlogPost, expected_rev: Optional[str] = None
    ) -> BlogPost:
        post.id = post.id or make_document_id(BLOG_POST, post.slug)
        with error_context("update", self.component, identifier=post.id):
            post.updated_at = utcnow()
            post.rev = await self._replace(
                post.id, self.to_document(post), expected_rev or post.rev
            )
        return post

    async def delete(self, post_id: str, expected_rev: Optional[str] = None) -> None:
        with error_context("delete", self.component, identifier=post_id):
            await self._remove(post_id, expected_rev)

    async def list(self, options: Optional[ListOptions] = None) -> List[BlogPost]:
        with error_context("list", self.component):
            return self._to_posts(await self._list_view("all", options))

    async def list_by_status(
        self, status: PageStatus, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        with error_context("list_by_status", self.component, identifier=status.value):
            return self._to_posts(
                await self._list_view("by_status", options, key_prefix=status.value)
            )

    async def list_published(
        self, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        """
        Posts already published, keyed by ``published_at``.

        The view cannot know the current time, so the ``now`` cut-off is
        applied as a key bound at query time.
        """
        options = options or ListOptions()
        now = utcnow()
        params: Dict[str, Any] = {
            "include_docs": True,
            "limit": options.limit,
            "skip": options.skip,
            "descending": options.descending,
        }
        if options.descending:
            params["startkey"] = format_timestamp(now)
        else:
            params["endkey"] = format_timestamp(now)
        with error_context("list_published", self.component):
            result = await self._client.query(self.design, "published", **params)
            return [post for post in self._to_posts(result.docs) if post.is_published(now)]

    async def list_by_author(
        self, author: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        with error_context("list_by_author", self.component, identifier=author):
            return self._to_posts(
                await self._list_view("by_author", options, key_prefix=author)
            )

    async def list_by_category(
        self, category_slug: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        with error_context("list_by_category", self.component, identifier=category_slug):
            return self._to_posts(
                await self._list_view("by_category", options, key_prefix=category_slug)
            )

    async def list_by_tag(
        self, tag_slug: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        with error_context("list_by_tag", self.component, identifier=tag_slug):
            return self._to_posts(
                await self._list_view("by_tag", options, key_prefix=tag_slug)
            )

    async def search(
        self, query: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        with error_context("search", self.component, query=query):
            return self._to_posts(await self._search(query, options))

    async def get_categories(self) -> List[TermCount]:
        with error_context("get_categories", self.component):
            return await self._term_counts("categories")

    async def get_tags(self) -> List[TermCount]:
        with error_context("get_tags", self.component):
            return await self._term_counts("tags")

    async def _term_counts(self, view: str) -> List[TermCount]:
        """
        Grouped ``_count`` rows merged by derived slug.

        Names that differ only in case or spacing collapse into one entry that
        keeps the first name seen.
        """
        result = await self._client.query(self.design, view, group=True)
        merged: Dict[str, TermCount] = {}
        for row in result.rows:
            slug = slugify_name(row.key)
            previous = merged.get(slug)
            merged[slug] = TermCount(
                name=previous.name if previous else row.key,
                slug=slug,
                post_count=(previous.post_count if previous else 0) + int(row.value),
            )
        return sorted(merged.values(), key=lambda term: term.name)

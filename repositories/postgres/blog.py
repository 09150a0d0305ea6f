"""PostgreSQL blog post repository."""
from typing import List, Optional

from core.identifiers import (
    BLOG_POST,
    make_document_id,
    make_prefix_tsquery,
    natural_key,
)
from db.interfaces import IBlogPostRepository, ListOptions
from db.models import BlogPostRecord
from db.queries import Queries
from domain.entities import (
    BlogPost,
    Content,
    Meta,
    PageStatus,
    TermCount,
    utcnow,
)
from repositories.postgres.base import PostgresRepository, patch_values


class PostgresBlogPostRepository(PostgresRepository, IBlogPostRepository):
    """
    Blog posts with categories and tags held in junction tables.

    Categories and tags are written by display name; each name resolves to a
    category/tag row keyed by its derived slug, created on first use.
    """

    entity_type = BLOG_POST
    table = "blog_posts"

    @staticmethod
    def to_entity(record: BlogPostRecord) -> BlogPost:
        return BlogPost(
            slug=record.slug,
            title=record.title,
            excerpt=record.excerpt,
            content=Content.from_dict(record.content),
            meta=Meta.from_dict(record.meta),
            status=PageStatus(record.status),
            author=record.author,
            categories=[category.name for category in record.categories],
            tags=[tag.name for tag in record.tags],
            featured_image=record.featured_image,
            published_at=record.published_at,
            id=make_document_id(BLOG_POST, record.slug),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def _write_terms(self, q: Queries, record: BlogPostRecord, post: BlogPost) -> BlogPost:
        if post.categories is not None:
            await q.set_post_categories(record, post.categories)
        if post.tags is not None:
            await q.set_post_tags(record, post.tags)
        return self.to_entity(await q.refresh_post_terms(record))

    async def create(self, post: BlogPost) -> BlogPost:
        now = utcnow()
        async with self._queries("create", identifier=post.slug) as q:
            record = await q.insert_post(
                slug=post.slug,
                title=post.title or "",
                excerpt=post.excerpt,
                content=(post.content or Content()).to_dict(),
                meta=(post.meta or Meta()).to_dict(),
                status=(post.status or PageStatus.DRAFT).value,
                author=post.author,
                featured_image=post.featured_image,
                published_at=post.published_at,
                created_at=post.created_at or now,
                updated_at=post.updated_at or now,
            )
            created = await self._write_terms(q, record, post)
        self._logger.info("Blog post created", post_id=created.id)
        return created

    async def get_by_id(self, post_id: str) -> BlogPost:
        return await self.get_by_slug(natural_key(BLOG_POST, post_id))

    async def get_by_slug(self, slug: str) -> BlogPost:
        async with self._queries("get_by_slug", identifier=slug) as q:
            record = self._require(await q.get_post_by_slug(slug), slug)
            return self.to_entity(record)

    async def update(
        self, post: BlogPost, expected_rev: Optional[str] = None
    ) -> BlogPost:
        """
        Patch the row found by the id's slug.

        ``None`` fields keep their stored values; that includes
        ``categories`` and ``tags``, while an empty list clears them.
        """
        slug = natural_key(BLOG_POST, post.id) if post.id else post.slug
        async with self._queries("update", identifier=slug) as q:
            record = self._require(await q.get_post_by_slug(slug), slug)
            record = await q.update_post(
                record,
                updated_at=utcnow(),
                **patch_values(
                    slug=post.slug,
                    title=post.title,
                    excerpt=post.excerpt,
                    content=post.content.to_dict() if post.content is not None else None,
                    meta=post.meta.to_dict() if post.meta is not None else None,
                    status=post.status.value if post.status is not None else None,
                    author=post.author,
                    featured_image=post.featured_image,
                    published_at=post.published_at,
                ),
            )
            return await self._write_terms(q, record, post)

    async def delete(self, post_id: str, expected_rev: Optional[str] = None) -> None:
        slug = natural_key(BLOG_POST, post_id)
        async with self._queries("delete", identifier=slug) as q:
            record = self._require(await q.get_post_by_slug(slug), slug)
            self._check_deleted(await q.delete_post_by_id(record.id), post_id)

    async def list(self, options: Optional[ListOptions] = None) -> List[BlogPost]:
        async with self._queries("list") as q:
            records = await q.list_posts_all(**self._window(options))
            return [self.to_entity(record) for record in records]

    async def list_by_status(
        self, status: PageStatus, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        async with self._queries("list_by_status", identifier=status.value) as q:
            records = await q.list_posts_by_status(status.value, **self._window(options))
            return [self.to_entity(record) for record in records]

    async def list_published(
        self, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        async with self._queries("list_published") as q:
            records = await q.list_published_posts(utcnow(), **self._window(options))
            return [self.to_entity(record) for record in records]

    async def list_by_author(
        self, author: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        async with self._queries("list_by_author", identifier=author) as q:
            records = await q.list_posts_by_author(author, **self._window(options))
            return [self.to_entity(record) for record in records]

    async def list_by_category(
        self, category_slug: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        async with self._queries("list_by_category", identifier=category_slug) as q:
            records = await q.list_posts_by_category_slug(
                category_slug, **self._window(options)
            )
            return [self.to_entity(record) for record in records]

    async def list_by_tag(
        self, tag_slug: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        async with self._queries("list_by_tag", identifier=tag_slug) as q:
            records = await q.list_posts_by_tag_slug(tag_slug, **self._window(options))
            return [self.to_entity(record) for record in records]

    async def search(
        self, query: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        tsquery = make_prefix_tsquery(query)
        if not tsquery:
            return []
        options = options or ListOptions()
        async with self._queries("search", query=query) as q:
            records = await q.search_posts(tsquery, options.limit, options.offset)
            return [self.to_entity(record) for record in records]

    async def get_categories(self) -> List[TermCount]:
        async with self._queries("get_categories") as q:
            rows = await q.get_category_counts()
        return [TermCount(name=name, slug=slug, post_count=count) for name, slug, count in rows]

    async def get_tags(self) -> List[TermCount]:
        async with self._queries("get_tags") as q:
            rows = await q.get_tag_counts()
        return [TermCount(name=name, slug=slug, post_count=count) for name, slug, count in rows]

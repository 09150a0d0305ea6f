"""
Content Store - Relational Query Layer

One method per SQL statement, bound to a single ``AsyncSession``. Repositories
never build SQL themselves; they call these methods, which keeps every
statement in one place and lets a unit of work share the session.

Listing conventions:
- ``list_*_all`` queries carry no predicate at all:
  ``ORDER BY created_at DESC|ASC LIMIT :limit OFFSET :offset``.
- Search takes a tsquery built by ``core.identifiers.make_prefix_tsquery``
  and orders by ``ts_rank_cd`` then newest first.
"""
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar
import uuid

from sqlalchemy import Select, delete, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from core.identifiers import slugify_name
from db.models import (
    Base,
    BlogPostRecord,
    CategoryRecord,
    ContactSubmissionRecord,
    MediaRecord,
    PageRecord,
    TagRecord,
    UserRecord,
    blog_post_categories,
    blog_post_tags,
)

R = TypeVar("R", bound=Base)

PUBLISHED = "published"


def _paginate(
    stmt: Select,
    model: Type[Base],
    limit: int,
    offset: int,
    descending: bool = True,
) -> Select:
    order = model.created_at.desc() if descending else model.created_at.asc()
    return stmt.order_by(order, model.id).limit(limit).offset(offset)


def _ranked(stmt: Select, model: Type[Base], tsquery: str, limit: int, offset: int) -> Select:
    query = func.to_tsquery("simple", tsquery)
    return (
        stmt.where(model.search_tsv.op("@@")(query))
        .order_by(func.ts_rank_cd(model.search_tsv, query).desc(), model.created_at.desc())
        .limit(limit)
        .offset(offset)
    )


class Queries:
    """Typed statements over one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _all(self, stmt: Select) -> List[Any]:
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _first(self, stmt: Select) -> Optional[Any]:
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _insert(self, record: R) -> R:
        self.session.add(record)
        await self.session.flush()
        return record

    async def _update(self, record: R, values: dict) -> R:
        for key, value in values.items():
            setattr(record, key, value)
        await self.session.flush()
        return record

    async def _delete_by_id(self, model: Type[Base], record_id: uuid.UUID) -> int:
        result = await self.session.execute(delete(model).where(model.id == record_id))
        return result.rowcount

    # -------------------------------------------------------------------------
    # Pages
    # -------------------------------------------------------------------------

    async def insert_page(self, **values: Any) -> PageRecord:
        return await self._insert(PageRecord(**values))

    async def get_page_by_slug(self, slug: str) -> Optional[PageRecord]:
        return await self._first(select(PageRecord).where(PageRecord.slug == slug))

    async def update_page(self, record: PageRecord, **values: Any) -> PageRecord:
        return await self._update(record, values)

    async def delete_page_by_id(self, page_id: uuid.UUID) -> int:
        return await self._delete_by_id(PageRecord, page_id)

    async def list_pages_all(
        self, limit: int, offset: int, descending: bool = True
    ) -> List[PageRecord]:
        return await self._all(
            _paginate(select(PageRecord), PageRecord, limit, offset, descending)
        )

    async def list_pages_by_status(
        self, status: str, limit: int, offset: int, descending: bool = True
    ) -> List[PageRecord]:
        stmt = select(PageRecord).where(PageRecord.status == status)
        return await self._all(_paginate(stmt, PageRecord, limit, offset, descending))

    async def search_pages(self, tsquery: str, limit: int, offset: int) -> List[PageRecord]:
        return await self._all(_ranked(select(PageRecord), PageRecord, tsquery, limit, offset))

    # -------------------------------------------------------------------------
    # Blog posts
    # -------------------------------------------------------------------------

    async def insert_post(self, **values: Any) -> BlogPostRecord:
        return await self._insert(BlogPostRecord(**values))

    async def get_post_by_slug(self, slug: str) -> Optional[BlogPostRecord]:
        return await self._first(select(BlogPostRecord).where(BlogPostRecord.slug == slug))

    async def update_post(self, record: BlogPostRecord, **values: Any) -> BlogPostRecord:
        return await self._update(record, values)

    async def delete_post_by_id(self, post_id: uuid.UUID) -> int:
        return await self._delete_by_id(BlogPostRecord, post_id)

    async def list_posts_all(
        self, limit: int, offset: int, descending: bool = True
    ) -> List[BlogPostRecord]:
        return await self._all(
            _paginate(select(BlogPostRecord), BlogPostRecord, limit, offset, descending)
        )

    async def list_posts_by_status(
        self, status: str, limit: int, offset: int, descending: bool = True
    ) -> List[BlogPostRecord]:
        stmt = select(BlogPostRecord).where(BlogPostRecord.status == status)
        return await self._all(_paginate(stmt, BlogPostRecord, limit, offset, descending))

    async def list_published_posts(
        self, now: datetime, limit: int, offset: int, descending: bool = True
    ) -> List[BlogPostRecord]:
        order = (
            BlogPostRecord.published_at.desc()
            if descending
            else BlogPostRecord.published_at.asc()
        )
        stmt = (
            select(BlogPostRecord)
            .where(
                BlogPostRecord.status == PUBLISHED,
                BlogPostRecord.published_at.is_not(None),
                BlogPostRecord.published_at <= now,
            )
            .order_by(order, BlogPostRecord.id)
            .limit(limit)
            .offset(offset)
        )
        return await self._all(stmt)

    async def list_posts_by_author(
        self, author: str, limit: int, offset: int, descending: bool = True
    ) -> List[BlogPostRecord]:
        stmt = select(BlogPostRecord).where(BlogPostRecord.author == author)
        return await self._all(_paginate(stmt, BlogPostRecord, limit, offset, descending))

    async def list_posts_by_category_slug(
        self, slug: str, limit: int, offset: int, descending: bool = True
    ) -> List[BlogPostRecord]:
        stmt = (
            select(BlogPostRecord)
            .join(blog_post_categories, blog_post_categories.c.post_id == BlogPostRecord.id)
            .join(CategoryRecord, CategoryRecord.id == blog_post_categories.c.category_id)
            .where(CategoryRecord.slug == slug)
        )
        return await self._all(_paginate(stmt, BlogPostRecord, limit, offset, descending))

    async def list_posts_by_tag_slug(
        self, slug: str, limit: int, offset: int, descending: bool = True
    ) -> List[BlogPostRecord]:
        stmt = (
            select(BlogPostRecord)
            .join(blog_post_tags, blog_post_tags.c.post_id == BlogPostRecord.id)
            .join(TagRecord, TagRecord.id == blog_post_tags.c.tag_id)
            .where(TagRecord.slug == slug)
        )
        return await self._all(_paginate(stmt, BlogPostRecord, limit, offset, descending))

    async def search_posts(
        self, tsquery: str, limit: int, offset: int
    ) -> List[BlogPostRecord]:
        return await self._all(
            _ranked(select(BlogPostRecord), BlogPostRecord, tsquery, limit, offset)
        )

    async def get_or_create_category(self, name: str) -> CategoryRecord:
        return await self._get_or_create_term(CategoryRecord, name)

    async def get_or_create_tag(self, name: str) -> TagRecord:
        return await self._get_or_create_term(TagRecord, name)

    async def _get_or_create_term(self, model: Type[R], name: str) -> R:
        slug = slugify_name(name)
        await self.session.execute(
            pg_insert(model)
            .values(id=uuid.uuid4(), slug=slug, name=name.strip())
            .on_conflict_do_nothing(index_elements=["slug"])
        )
        return await self._first(select(model).where(model.slug == slug))

    async def set_post_categories(self, record: BlogPostRecord, names: Iterable[str]) -> None:
        """Replace the post's categories, keeping the given order."""
        terms = [await self.get_or_create_category(name) for name in names]
        await self._replace_links(blog_post_categories, "category_id", record.id, terms)

    async def set_post_tags(self, record: BlogPostRecord, names: Iterable[str]) -> None:
        terms = [await self.get_or_create_tag(name) for name in names]
        await self._replace_links(blog_post_tags, "tag_id", record.id, terms)

    async def _replace_links(
        self,
        table: Any,
        column: str,
        post_id: uuid.UUID,
        terms: Sequence[Base],
    ) -> None:
        await self.session.execute(delete(table).where(table.c.post_id == post_id))
        rows = []
        seen = set()
        for term in terms:
            if term.id in seen:
                continue
            seen.add(term.id)
            rows.append({"post_id": post_id, column: term.id, "position": len(rows)})
        if rows:
            await self.session.execute(insert(table), rows)

    async def refresh_post_terms(self, record: BlogPostRecord) -> BlogPostRecord:
        await self.session.refresh(record, attribute_names=["categories", "tags"])
        return record

    async def get_category_counts(self) -> List[Tuple[str, str, int]]:
        return await self._term_counts(CategoryRecord, blog_post_categories, "category_id")

    async def get_tag_counts(self) -> List[Tuple[str, str, int]]:
        return await self._term_counts(TagRecord, blog_post_tags, "tag_id")

    async def _term_counts(
        self, model: Type[Base], table: Any, column: str
    ) -> List[Tuple[str, str, int]]:
        post_count = func.count(BlogPostRecord.id)
        stmt = (
            select(model.name, model.slug, post_count)
            .join(table, table.c[column] == model.id)
            .join(BlogPostRecord, BlogPostRecord.id == table.c.post_id)
            .where(BlogPostRecord.status == PUBLISHED)
            .group_by(model.id, model.name, model.slug)
            .having(post_count > 0)
            .order_by(model.name)
        )
        result = await self.session.execute(stmt)
        return [(name, slug, count) for name, slug, count in result.all()]

    # -------------------------------------------------------------------------
    # Media
    # -------------------------------------------------------------------------

    async def insert_media(self, **values: Any) -> MediaRecord:
        return await self._insert(MediaRecord(**values))

    async def get_media_by_filename(self, filename: str) -> Optional[MediaRecord]:
        return await self._first(select(MediaRecord).where(MediaRecord.filename == filename))

    async def update_media(self, record: MediaRecord, **values: Any) -> MediaRecord:
        return await self._update(record, values)

    async def delete_media_by_id(self, media_id: uuid.UUID) -> int:
        return await self._delete_by_id(MediaRecord, media_id)

    async def list_media_all(
        self, limit: int, offset: int, descending: bool = True
    ) -> List[MediaRecord]:
        return await self._all(
            _paginate(select(MediaRecord), MediaRecord, limit, offset, descending)
        )

    async def list_media_by_uploader(
        self, uploaded_by: str, limit: int, offset: int, descending: bool = True
    ) -> List[MediaRecord]:
        stmt = select(MediaRecord).where(MediaRecord.uploaded_by == uploaded_by)
        return await self._all(_paginate(stmt, MediaRecord, limit, offset, descending))

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def insert_user(self, **values: Any) -> UserRecord:
        return await self._insert(UserRecord(**values))

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return await self._first(select(UserRecord).where(UserRecord.email == email))

    async def update_user(self, record: UserRecord, **values: Any) -> UserRecord:
        return await self._update(record, values)

    async def delete_user_by_id(self, user_id: uuid.UUID) -> int:
        return await self._delete_by_id(UserRecord, user_id)

    async def list_users_all(
        self, limit: int, offset: int, descending: bool = True
    ) -> List[UserRecord]:
        return await self._all(
            _paginate(select(UserRecord), UserRecord, limit, offset, descending)
        )

    async def list_users_by_role(
        self, role: str, limit: int, offset: int, descending: bool = True
    ) -> List[UserRecord]:
        stmt = select(UserRecord).where(UserRecord.role == role)
        return await self._all(_paginate(stmt, UserRecord, limit, offset, descending))

    # -------------------------------------------------------------------------
    # Contact submissions
    # -------------------------------------------------------------------------

    async def insert_contact(self, **values: Any) -> ContactSubmissionRecord:
        return await self._insert(ContactSubmissionRecord(**values))

    async def get_contact_by_id(
        self, contact_id: uuid.UUID
    ) -> Optional[ContactSubmissionRecord]:
        return await self._first(
            select(ContactSubmissionRecord).where(ContactSubmissionRecord.id == contact_id)
        )

    async def update_contact(
        self, record: ContactSubmissionRecord, **values: Any
    ) -> ContactSubmissionRecord:
        return await self._update(record, values)

    async def delete_contact_by_id(self, contact_id: uuid.UUID) -> int:
        return await self._delete_by_id(ContactSubmissionRecord, contact_id)

    async def list_contacts_all(
        self, limit: int, offset: int, descending: bool = True
    ) -> List[ContactSubmissionRecord]:
        return await self._all(
            _paginate(
                select(ContactSubmissionRecord),
                ContactSubmissionRecord,
                limit,
                offset,
                descending,
            )
        )

    async def list_contacts_by_status(
        self, status: str, limit: int, offset: int, descending: bool = True
    ) -> List[ContactSubmissionRecord]:
        stmt = select(ContactSubmissionRecord).where(ContactSubmissionRecord.status == status)
        return await self._all(
            _paginate(stmt, ContactSubmissionRecord, limit, offset, descending)
        )

    async def count_contacts_by_status(self, status: str) -> int:
        stmt = (
            select(func.count())
            .select_from(ContactSubmissionRecord)
            .where(ContactSubmissionRecord.status == status)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def search_contacts(
        self, tsquery: str, limit: int, offset: int
    ) -> List[ContactSubmissionRecord]:
        return await self._all(
            _ranked(
                select(ContactSubmissionRecord),
                ContactSubmissionRecord,
                tsquery,
                limit,
                offset,
            )
        )

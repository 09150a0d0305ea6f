"""PostgreSQL page repository."""
from typing import List, Optional

from core.identifiers import PAGE, make_document_id, make_prefix_tsquery, natural_key
from db.interfaces import IPageRepository, ListOptions
from db.models import PageRecord
from domain.entities import Content, Meta, Page, PageStatus, utcnow
from repositories.postgres.base import PostgresRepository, patch_values


class PostgresPageRepository(PostgresRepository, IPageRepository):
    entity_type = PAGE
    table = "pages"

    @staticmethod
    def to_entity(record: PageRecord) -> Page:
        return Page(
            slug=record.slug,
            title=record.title,
            content=Content.from_dict(record.content),
            meta=Meta.from_dict(record.meta),
            status=PageStatus(record.status),
            id=make_document_id(PAGE, record.slug),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def create(self, page: Page) -> Page:
        now = utcnow()
        async with self._queries("create", identifier=page.slug) as q:
            record = await q.insert_page(
                slug=page.slug,
                title=page.title or "",
                content=(page.content or Content()).to_dict(),
                meta=(page.meta or Meta()).to_dict(),
                status=(page.status or PageStatus.DRAFT).value,
                created_at=page.created_at or now,
                updated_at=page.updated_at or now,
            )
            created = self.to_entity(record)
        self._logger.info("Page created", page_id=created.id)
        return created

    async def get_by_id(self, page_id: str) -> Page:
        return await self.get_by_slug(natural_key(PAGE, page_id))

    async def get_by_slug(self, slug: str) -> Page:
        async with self._queries("get_by_slug", identifier=slug) as q:
            record = self._require(await q.get_page_by_slug(slug), slug)
            return self.to_entity(record)

    async def update(self, page: Page, expected_rev: Optional[str] = None) -> Page:
        """Patch the row found by the id's slug; ``None`` fields keep stored values."""
        slug = natural_key(PAGE, page.id) if page.id else page.slug
        async with self._queries("update", identifier=slug) as q:
            record = self._require(await q.get_page_by_slug(slug), slug)
            record = await q.update_page(
                record,
                updated_at=utcnow(),
                **patch_values(
                    slug=page.slug,
                    title=page.title,
                    content=page.content.to_dict() if page.content is not None else None,
                    meta=page.meta.to_dict() if page.meta is not None else None,
                    status=page.status.value if page.status is not None else None,
                ),
            )
            return self.to_entity(record)

    async def delete(self, page_id: str, expected_rev: Optional[str] = None) -> None:
        slug = natural_key(PAGE, page_id)
        async with self._queries("delete", identifier=slug) as q:
            record = self._require(await q.get_page_by_slug(slug), slug)
            self._check_deleted(await q.delete_page_by_id(record.id), page_id)

    async def list(self, options: Optional[ListOptions] = None) -> List[Page]:
        async with self._queries("list") as q:
            records = await q.list_pages_all(**self._window(options))
            return [self.to_entity(record) for record in records]

    async def list_by_status(
        self, status: PageStatus, options: Optional[ListOptions] = None
    ) -> List[Page]:
        async with self._queries("list_by_status", identifier=status.value) as q:
            records = await q.list_pages_by_status(status.value, **self._window(options))
            return [self.to_entity(record) for record in records]

    async def search(self, query: str, options: Optional[ListOptions] = None) -> List[Page]:
        tsquery = make_prefix_tsquery(query)
        if not tsquery:
            return []
        options = options or ListOptions()
        async with self._queries("search", query=query) as q:
            records = await q.search_pages(tsquery, options.limit, options.offset)
            return [self.to_entity(record) for record in records]

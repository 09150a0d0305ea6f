"""CouchDB page repository."""
from dataclasses import replace
from typing import Any, Dict, List, Optional

from core.errors import error_context
from core.identifiers import PAGE, make_document_id
from db.interfaces import IPageRepository, ListOptions
from db.views import PAGE_TYPE
from domain.entities import Content, Meta, Page, PageStatus, utcnow
from repositories.couchdb.base import (
    CouchDBRepository,
    enum_value,
    format_timestamp,
    optional_enum,
    parse_timestamp,
)


class CouchDBPageRepository(CouchDBRepository, IPageRepository):
    entity_type = PAGE
    doc_type = PAGE_TYPE
    design = "pages"

    @staticmethod
    def to_document(page: Page) -> Dict[str, Any]:
        return {
            "slug": page.slug,
            "title": page.title,
            "content": page.content.to_dict() if page.content is not None else None,
            "meta": page.meta.to_dict() if page.meta is not None else None,
            "status": enum_value(page.status),
            "created_at": format_timestamp(page.created_at),
            "updated_at": format_timestamp(page.updated_at),
        }

    @staticmethod
    def from_document(doc: Dict[str, Any]) -> Page:
        return Page(
            slug=doc["slug"],
            title=doc.get("title"),
            content=Content.from_dict(doc.get("content")),
            meta=Meta.from_dict(doc.get("meta")),
            status=optional_enum(PageStatus, doc.get("status")),
            id=doc["_id"],
            rev=doc.get("_rev"),
            created_at=parse_timestamp(doc.get("created_at")),
            updated_at=parse_timestamp(doc.get("updated_at")),
        )

    async def create(self, page: Page) -> Page:
        page = replace(page)
        page.id = page.id or make_document_id(PAGE, page.slug)
        with error_context("create", self.component, identifier=page.id):
            now = utcnow()
            page.created_at = page.created_at or now
            page.updated_at = page.updated_at or now
            if page.status is None:
                page.status = PageStatus.DRAFT
            if page.content is None:
                page.content = Content()
            if page.meta is None:
                page.meta = Meta()
            page.rev = await self._insert(page.id, self.to_document(page))
        self._logger.info("Page created", page_id=page.id)
        return page

    async def get_by_id(self, page_id: str) -> Page:
        with error_context("get_by_id", self.component, identifier=page_id):
            return self.from_document(await self._fetch(page_id))

    async def get_by_slug(self, slug: str) -> Page:
        with error_context("get_by_slug", self.component, identifier=slug):
            return self.from_document(await self._first_by_key("by_slug", slug))

    async def update(self, page: Page, expected_rev: Optional[str] = None) -> Page:
        page.id = page.id or make_document_id(PAGE, page.slug)
        with error_context("update", self.component, identifier=page.id):
            page.updated_at = utcnow()
            page.rev = await self._replace(
                page.id, self.to_document(page), expected_rev or page.rev
            )
        return page

    async def delete(self, page_id: str, expected_rev: Optional[str] = None) -> None:
        with error_context("delete", self.component, identifier=page_id):
            await self._remove(page_id, expected_rev)

    async def list(self, options: Optional[ListOptions] = None) -> List[Page]:
        with error_context("list", self.component):
            docs = await self._list_view("all", options)
            return [self.from_document(doc) for doc in docs]

    async def list_by_status(
        self, status: PageStatus, options: Optional[ListOptions] = None
    ) -> List[Page]:
        with error_context("list_by_status", self.component, identifier=status.value):
            docs = await self._list_view("by_status", options, key_prefix=status.value)
            return [self.from_document(doc) for doc in docs]

    async def search(self, query: str, options: Optional[ListOptions] = None) -> List[Page]:
        with error_context("search", self.component, query=query):
            docs = await self._search(query, options)
            return [self.from_document(doc) for doc in docs]

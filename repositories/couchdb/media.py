"""CouchDB media repository."""
from dataclasses import replace
from typing import Any, Dict, List, Optional

from core.errors import error_context
from core.identifiers import MEDIA, make_document_id
from db.interfaces import IMediaRepository, ListOptions
from db.views import MEDIA_TYPE
from domain.entities import Media, utcnow
from repositories.couchdb.base import (
    CouchDBRepository,
    format_timestamp,
    parse_timestamp,
)


class CouchDBMediaRepository(CouchDBRepository, IMediaRepository):
    entity_type = MEDIA
    doc_type = MEDIA_TYPE
    design = "media"

    @staticmethod
    def to_document(media: Media) -> Dict[str, Any]:
        return {
            "filename": media.filename,
            "original_name": media.original_name,
            "mime_type": media.mime_type,
            "size": media.size,
            "url": media.url,
            "alt_text": media.alt_text,
            "uploaded_by": media.uploaded_by,
            "created_at": format_timestamp(media.created_at),
            "updated_at": format_timestamp(media.updated_at),
        }

    @staticmethod
    def from_document(doc: Dict[str, Any]) -> Media:
        return Media(
            filename=doc["filename"],
            original_name=doc.get("original_name"),
            mime_type=doc.get("mime_type"),
            size=doc.get("size"),
            url=doc.get("url"),
            alt_text=doc.get("alt_text"),
            uploaded_by=doc.get("uploaded_by"),
            id=doc["_id"],
            rev=doc.get("_rev"),
            created_at=parse_timestamp(doc.get("created_at")),
            updated_at=parse_timestamp(doc.get("updated_at")),
        )

    async def create(self, media: Media) -> Media:
        media = replace(media)
        media.id = media.id or make_document_id(MEDIA, media.filename)
        with error_context("create", self.component, identifier=media.id):
            now = utcnow()
            media.created_at = media.created_at or now
            media.updated_at = media.updated_at or now
            if media.url is None:
                media.url = f"/uploads/{media.filename}"
            media.rev = await self._insert(media.id, self.to_document(media))
        self._logger.info("Media created", media_id=media.id, mime_type=media.mime_type)
        return media

    async def get_by_id(self, media_id: str) -> Media:
        with error_context("get_by_id", self.component, identifier=media_id):
            return self.from_document(await self._fetch(media_id))

    async def get_by_filename(self, filename: str) -> Media:
        with error_context("get_by_filename", self.component, identifier=filename):
            return self.from_document(await self._first_by_key("by_filename", filename))

    async def update(self, media: Media, expected_rev: Optional[str] = None) -> Media:
        media.id = media.id or make_document_id(MEDIA, media.filename)
        with error_context("update", self.component, identifier=media.id):
            media.updated_at = utcnow()
            media.rev = await self._replace(
                media.id, self.to_document(media), expected_rev or media.rev
            )
        return media

    async def delete(self, media_id: str, expected_rev: Optional[str] = None) -> None:
        with error_context("delete", self.component, identifier=media_id):
            await self._remove(media_id, expected_rev)

    async def list(self, options: Optional[ListOptions] = None) -> List[Media]:
        with error_context("list", self.component):
            docs = await self._list_view("all", options)
            return [self.from_document(doc) for doc in docs]

    async def list_by_uploader(
        self, uploaded_by: str, options: Optional[ListOptions] = None
    ) -> List[Media]:
        with error_context("list_by_uploader", self.component, identifier=uploaded_by):
            docs = await self._list_view("by_uploader", options, key_prefix=uploaded_by)
            return [self.from_document(doc) for doc in docs]

"""PostgreSQL media repository."""
from typing import List, Optional

from core.identifiers import MEDIA, make_document_id, natural_key
from db.interfaces import IMediaRepository, ListOptions
from db.models import MediaRecord
from domain.entities import Media, utcnow
from repositories.postgres.base import PostgresRepository, patch_values


class PostgresMediaRepository(PostgresRepository, IMediaRepository):
    entity_type = MEDIA
    table = "media"

    @staticmethod
    def to_entity(record: MediaRecord) -> Media:
        return Media(
            filename=record.filename,
            original_name=record.original_name,
            mime_type=record.mime_type,
            size=record.size_bytes,
            url=record.url,
            alt_text=record.alt_text,
            uploaded_by=record.uploaded_by,
            id=make_document_id(MEDIA, record.filename),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def create(self, media: Media) -> Media:
        now = utcnow()
        async with self._queries("create", identifier=media.filename) as q:
            record = await q.insert_media(
                filename=media.filename,
                original_name=media.original_name,
                mime_type=media.mime_type,
                size_bytes=media.size,
                url=media.url or f"/uploads/{media.filename}",
                alt_text=media.alt_text,
                uploaded_by=media.uploaded_by,
                created_at=media.created_at or now,
                updated_at=media.updated_at or now,
            )
            created = self.to_entity(record)
        self._logger.info("Media created", media_id=created.id, mime_type=created.mime_type)
        return created

    async def get_by_id(self, media_id: str) -> Media:
        return await self.get_by_filename(natural_key(MEDIA, media_id))

    async def get_by_filename(self, filename: str) -> Media:
        async with self._queries("get_by_filename", identifier=filename) as q:
            record = self._require(await q.get_media_by_filename(filename), filename)
            return self.to_entity(record)

    async def update(self, media: Media, expected_rev: Optional[str] = None) -> Media:
        filename = natural_key(MEDIA, media.id) if media.id else media.filename
        async with self._queries("update", identifier=filename) as q:
            record = self._require(await q.get_media_by_filename(filename), filename)
            record = await q.update_media(
                record,
                updated_at=utcnow(),
                **patch_values(
                    filename=media.filename,
                    original_name=media.original_name,
                    mime_type=media.mime_type,
                    size_bytes=media.size,
                    url=media.url,
                    alt_text=media.alt_text,
                    uploaded_by=media.uploaded_by,
                ),
            )
            return self.to_entity(record)

    async def delete(self, media_id: str, expected_rev: Optional[str] = None) -> None:
        filename = natural_key(MEDIA, media_id)
        async with self._queries("delete", identifier=filename) as q:
            record = self._require(await q.get_media_by_filename(filename), filename)
            self._check_deleted(await q.delete_media_by_id(record.id), media_id)

    async def list(self, options: Optional[ListOptions] = None) -> List[Media]:
        async with self._queries("list") as q:
            records = await q.list_media_all(**self._window(options))
            return [self.to_entity(record) for record in records]

    async def list_by_uploader(
        self, uploaded_by: str, options: Optional[ListOptions] = None
    ) -> List[Media]:
        async with self._queries("list_by_uploader", identifier=uploaded_by) as q:
            records = await q.list_media_by_uploader(uploaded_by, **self._window(options))
            return [self.to_entity(record) for record in records]

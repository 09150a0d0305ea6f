"""PostgreSQL contact submission repository."""
import uuid
from typing import List, Optional

from core.identifiers import CONTACT, make_document_id, make_prefix_tsquery, natural_key
from db.interfaces import IContactRepository, ListOptions
from db.models import ContactSubmissionRecord
from db.queries import Queries
from domain.entities import ContactStatus, ContactSubmission, utcnow
from repositories.postgres.base import PostgresRepository, patch_values


# Namespace for UUIDs derived from legacy contact ids that are not UUIDs
# (e.g. the nanosecond timestamps of older CouchDB submissions).
LEGACY_CONTACT_NAMESPACE = uuid.UUID("6f1c3a52-8d0e-5b7a-9c4e-2a7d5e9b1f30")


def parse_contact_id(submission_id: str) -> uuid.UUID:
    """
    UUID primary key behind ``contact:{key}``.

    A key that is already a UUID is used as is; any other key maps to the
    same uuid5 every time, so re-importing a legacy submission hits the
    row it created before.
    """
    key = natural_key(CONTACT, submission_id)
    try:
        return uuid.UUID(key)
    except ValueError:
        return uuid.uuid5(LEGACY_CONTACT_NAMESPACE, key)


class PostgresContactRepository(PostgresRepository, IContactRepository):
    """Contact submissions keyed directly by the UUID in their external id."""

    entity_type = CONTACT
    table = "contact_submissions"

    @staticmethod
    def to_entity(record: ContactSubmissionRecord) -> ContactSubmission:
        return ContactSubmission(
            name=record.name,
            email=record.email,
            company=record.company,
            message=record.message,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
            status=ContactStatus(record.status),
            id=make_document_id(CONTACT, str(record.id)),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def _get_record(self, q: Queries, submission_id: str) -> ContactSubmissionRecord:
        contact_id = parse_contact_id(submission_id)
        return self._require(await q.get_contact_by_id(contact_id), submission_id)

    async def create(self, submission: ContactSubmission) -> ContactSubmission:
        contact_id = parse_contact_id(submission.id) if submission.id else None
        now = utcnow()
        async with self._queries("create", identifier=submission.id) as q:
            record = await q.insert_contact(
                id=contact_id or uuid.uuid4(),
                name=submission.name,
                email=submission.email,
                company=submission.company,
                message=submission.message,
                ip_address=submission.ip_address,
                user_agent=submission.user_agent,
                status=(submission.status or ContactStatus.NEW).value,
                created_at=submission.created_at or now,
                updated_at=submission.updated_at or now,
            )
            created = self.to_entity(record)
        self._logger.info("Contact submission created", submission_id=created.id)
        return created

    async def get_by_id(self, submission_id: str) -> ContactSubmission:
        async with self._queries("get_by_id", identifier=submission_id) as q:
            return self.to_entity(await self._get_record(q, submission_id))

    async def update(
        self, submission: ContactSubmission, expected_rev: Optional[str] = None
    ) -> ContactSubmission:
        submission_id = submission.id or ""
        async with self._queries("update", identifier=submission_id) as q:
            record = await self._get_record(q, submission_id)
            record = await q.update_contact(
                record,
                updated_at=utcnow(),
                **patch_values(
                    name=submission.name,
                    email=submission.email,
                    company=submission.company,
                    message=submission.message,
                    ip_address=submission.ip_address,
                    user_agent=submission.user_agent,
                    status=submission.status.value if submission.status is not None else None,
                ),
            )
            return self.to_entity(record)

    async def delete(
        self, submission_id: str, expected_rev: Optional[str] = None
    ) -> None:
        async with self._queries("delete", identifier=submission_id) as q:
            record = await self._get_record(q, submission_id)
            self._check_deleted(await q.delete_contact_by_id(record.id), submission_id)

    async def list(
        self, options: Optional[ListOptions] = None
    ) -> List[ContactSubmission]:
        async with self._queries("list") as q:
            records = await q.list_contacts_all(**self._window(options))
            return [self.to_entity(record) for record in records]

    async def list_by_status(
        self, status: ContactStatus, options: Optional[ListOptions] = None
    ) -> List[ContactSubmission]:
        async with self._queries("list_by_status", identifier=status.value) as q:
            records = await q.list_contacts_by_status(status.value, **self._window(options))
            return [self.to_entity(record) for record in records]

    async def count_by_status(self, status: ContactStatus) -> int:
        async with self._queries("count_by_status", identifier=status.value) as q:
            return await q.count_contacts_by_status(status.value)

    async def search(
        self, query: str, options: Optional[ListOptions] = None
    ) -> List[ContactSubmission]:
        tsquery = make_prefix_tsquery(query)
        if not tsquery:
            return []
        options = options or ListOptions()
        async with self._queries("search", query=query) as q:
            records = await q.search_contacts(tsquery, options.limit, options.offset)
            return [self.to_entity(record) for record in records]

"""CouchDB contact submission repository."""
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional

from core.errors import InvalidArgumentError, error_context
from core.identifiers import CONTACT, make_document_id
from db.interfaces import IContactRepository, ListOptions
from db.views import CONTACT_TYPE
from domain.entities import ContactStatus, ContactSubmission, utcnow
from repositories.couchdb.base import (
    CouchDBRepository,
    enum_value,
    format_timestamp,
    optional_enum,
    parse_timestamp,
)


class CouchDBContactRepository(CouchDBRepository, IContactRepository):
    entity_type = CONTACT
    doc_type = CONTACT_TYPE
    design = "contact_submissions"

    @staticmethod
    def to_document(submission: ContactSubmission) -> Dict[str, Any]:
        return {
            "name": submission.name,
            "email": submission.email,
            "company": submission.company,
            "message": submission.message,
            "ip_address": submission.ip_address,
            "user_agent": submission.user_agent,
            "status": enum_value(submission.status),
            "created_at": format_timestamp(submission.created_at),
            "updated_at": format_timestamp(submission.updated_at),
        }

    @staticmethod
    def from_document(doc: Dict[str, Any]) -> ContactSubmission:
        return ContactSubmission(
            name=doc.get("name"),
            email=doc.get("email"),
            company=doc.get("company"),
            message=doc.get("message"),
            ip_address=doc.get("ip_address"),
            user_agent=doc.get("user_agent"),
            status=optional_enum(ContactStatus, doc.get("status")),
            id=doc["_id"],
            rev=doc.get("_rev"),
            created_at=parse_timestamp(doc.get("created_at")),
            updated_at=parse_timestamp(doc.get("updated_at")),
        )

    def _to_submissions(self, docs: List[Dict[str, Any]]) -> List[ContactSubmission]:
        return [self.from_document(doc) for doc in docs]

    async def create(self, submission: ContactSubmission) -> ContactSubmission:
        submission = replace(submission)
        submission.id = submission.id or make_document_id(CONTACT, str(uuid.uuid4()))
        with error_context("create", self.component, identifier=submission.id):
            now = utcnow()
            submission.created_at = submission.created_at or now
            submission.updated_at = submission.updated_at or now
            if submission.status is None:
                submission.status = ContactStatus.NEW
            submission.rev = await self._insert(
                submission.id, self.to_document(submission)
            )
        self._logger.info("Contact submission created", submission_id=submission.id)
        return submission

    async def get_by_id(self, submission_id: str) -> ContactSubmission:
        with error_context("get_by_id", self.component, identifier=submission_id):
            return self.from_document(await self._fetch(submission_id))

    async def update(
        self, submission: ContactSubmission, expected_rev: Optional[str] = None
    ) -> ContactSubmission:
        with error_context("update", self.component, identifier=submission.id):
            if not submission.id:
                raise InvalidArgumentError(
                    "contact submission update requires an id", field_name="id"
                )
            submission.updated_at = utcnow()
            submission.rev = await self._replace(
                submission.id,
                self.to_document(submission),
                expected_rev or submission.rev,
            )
        return submission

    async def delete(
        self, submission_id: str, expected_rev: Optional[str] = None
    ) -> None:
        with error_context("delete", self.component, identifier=submission_id):
            await self._remove(submission_id, expected_rev)

    async def list(
        self, options: Optional[ListOptions] = None
    ) -> List[ContactSubmission]:
        with error_context("list", self.component):
            return self._to_submissions(await self._list_view("all", options))

    async def list_by_status(
        self, status: ContactStatus, options: Optional[ListOptions] = None
    ) -> List[ContactSubmission]:
        with error_context("list_by_status", self.component, identifier=status.value):
            return self._to_submissions(
                await self._list_view("by_status", options, key_prefix=status.value)
            )

    async def count_by_status(self, status: ContactStatus) -> int:
        with error_context("count_by_status", self.component, identifier=status.value):
            return await self._count_view("by_status", status.value)

    async def search(
        self, query: str, options: Optional[ListOptions] = None
    ) -> List[ContactSubmission]:
        with error_context("search", self.component, query=query):
            return self._to_submissions(await self._search(query, options))

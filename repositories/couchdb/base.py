"""
Shared machinery for the CouchDB repositories.

Every repository here follows FULL_REPLACE update semantics and REVISION
concurrency control: ``update`` writes the whole document and CouchDB rejects
it when the revision is stale.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar

from core.errors import ConflictError, ConflictReason, NotFoundError
from core.identifiers import search_tokens
from db.couchdb import CouchDBClient
from db.interfaces import (
    ConcurrencyControl,
    IRepository,
    ListOptions,
    UpdateSemantics,
)
from db.views import HIGH_KEY_SUFFIX
from observability.logging import get_logger

E = TypeVar("E", bound=Enum)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_FRACTION = re.compile(r"\.(\d{6})\d+")


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Fixed-width UTC timestamp, so view keys sort chronologically."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse stored timestamps, including RFC 3339 values with nanoseconds."""
    if not value:
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        normalized = _FRACTION.sub(r".\1", value).replace("Z", "+00:00")
        parsed = datetime.fromisoformat(normalized)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)


def optional_enum(enum_type: Type[E], value: Optional[str]) -> Optional[E]:
    return enum_type(value) if value else None


def enum_value(value: Optional[Enum]) -> Optional[str]:
    return value.value if value is not None else None


class CouchDBRepository(IRepository):
    """Base class binding a repository to one design document."""

    backend: ClassVar[str] = "couchdb"
    update_semantics: ClassVar[UpdateSemantics] = UpdateSemantics.FULL_REPLACE
    concurrency_control: ClassVar[ConcurrencyControl] = ConcurrencyControl.REVISION

    entity_type: ClassVar[str]
    doc_type: ClassVar[str]
    design: ClassVar[str]

    def __init__(self, client: CouchDBClient):
        self._client = client
        self._logger = get_logger(f"contentstore.repositories.couchdb.{self.design}")

    @property
    def component(self) -> str:
        return f"{self.design}.couchdb"

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def _fetch(self, doc_id: str) -> Dict[str, Any]:
        try:
            doc = await self._client.get(doc_id)
        except NotFoundError as e:
            e.entity_type = self.entity_type
            raise
        if doc.get("type") != self.doc_type:
            raise NotFoundError(
                f"{self.entity_type} {doc_id} not found",
                entity_type=self.entity_type,
                identifier=doc_id,
            )
        return doc

    async def _first_by_key(self, view: str, key: Any) -> Dict[str, Any]:
        result = await self._client.query(
            self.design, view, key=key, include_docs=True, limit=1
        )
        docs = result.docs
        if not docs:
            raise NotFoundError(
                f"{self.entity_type} {key} not found",
                entity_type=self.entity_type,
                identifier=str(key),
            )
        return docs[0]

    async def _list_view(
        self,
        view: str,
        options: Optional[ListOptions],
        key_prefix: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Page through a view in creation order.

        ``key_prefix`` selects one filter value of a ``[value, created_at]``
        view; without it the view is keyed by ``created_at`` alone.
        """
        options = options or ListOptions()
        params: Dict[str, Any] = {
            "include_docs": True,
            "limit": options.limit,
            "skip": options.skip,
            "descending": options.descending,
        }
        if key_prefix is not None:
            low, high = [key_prefix], [key_prefix, {}]
            if options.descending:
                params["startkey"], params["endkey"] = high, low
            else:
                params["startkey"], params["endkey"] = low, high
        result = await self._client.query(self.design, view, **params)
        return result.docs

    async def _count_view(self, view: str, key_prefix: str) -> int:
        result = await self._client.query(
            self.design, view, startkey=[key_prefix], endkey=[key_prefix, {}]
        )
        return len(result.rows)

    async def _search(self, query: str, options: Optional[ListOptions]) -> List[Dict[str, Any]]:
        """
        AND of prefix matches over the ``search`` view.

        One range query per token; the id sets are intersected and the result
        paginated in memory, newest first.
        """
        options = options or ListOptions()
        tokens = search_tokens(query)
        if not tokens:
            return []

        matched: Optional[Dict[str, Dict[str, Any]]] = None
        for token in tokens:
            result = await self._client.query(
                self.design,
                "search",
                startkey=token,
                endkey=token + HIGH_KEY_SUFFIX,
                include_docs=True,
            )
            found = {row.id: row.doc for row in result.rows if row.doc is not None}
            if matched is None:
                matched = found
            else:
                matched = {doc_id: doc for doc_id, doc in matched.items() if doc_id in found}
            if not matched:
                return []

        ordered = sorted(
            matched.values(),
            key=lambda doc: doc.get("created_at") or "",
            reverse=options.descending,
        )
        return ordered[options.skip:options.skip + options.limit]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def _insert(self, doc_id: str, doc: Dict[str, Any]) -> str:
        """Write a new document; an existing id raises ConflictError."""
        body = {**doc, "_id": doc_id, "type": self.doc_type}
        body.pop("_rev", None)
        result = await self._client.put(doc_id, body, operation="create")
        self._logger.debug("Document created", doc_id=doc_id, rev=result.rev)
        return result.rev

    async def _replace(
        self,
        doc_id: str,
        doc: Dict[str, Any],
        rev: Optional[str],
    ) -> str:
        """Overwrite the whole document at ``rev``."""
        if rev is None:
            raise ConflictError(
                f"{self.entity_type} {doc_id} update requires the current revision",
                reason=ConflictReason.STALE_REVISION,
                entity_type=self.entity_type,
                identifier=doc_id,
            )
        body = {**doc, "_id": doc_id, "_rev": rev, "type": self.doc_type}
        result = await self._client.put(doc_id, body, operation="update")
        self._logger.debug("Document replaced", doc_id=doc_id, rev=result.rev)
        return result.rev

    async def _remove(self, doc_id: str, expected_rev: Optional[str]) -> None:
        """
        Revision-gated delete.

        With ``expected_rev`` a stale token raises ConflictError; without it
        the current revision is fetched first.
        """
        rev = expected_rev
        if rev is None:
            rev = (await self._fetch(doc_id))["_rev"]
        try:
            await self._client.delete(doc_id, rev)
        except NotFoundError as e:
            e.entity_type = self.entity_type
            raise
        self._logger.info("Document deleted", doc_id=doc_id)

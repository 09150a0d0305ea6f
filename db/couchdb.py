"""
Content Store - CouchDB Client

Thin async adapter over the CouchDB HTTP API using httpx.

Features:
- One pooled ``httpx.AsyncClient`` shared by all repositories
- get/put/delete primitives with revision tracking
- Design-document view queries with JSON-encoded keys
- HTTP status mapped onto the shared error taxonomy
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from core.errors import (
    ConflictError,
    ConflictReason,
    ContentStoreError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from db.interfaces import HealthCheckResult


logger = logging.getLogger("contentstore.db.couchdb")

DESIGN_PREFIX = "_design/"

# Params whose values CouchDB expects as JSON.
_JSON_PARAMS = frozenset({"key", "keys", "startkey", "endkey", "start_key", "end_key"})


@dataclass
class DocumentResult:
    """Outcome of a successful write."""
    id: str
    rev: str


@dataclass
class ViewRow:
    id: Optional[str]
    key: Any
    value: Any
    doc: Optional[Dict[str, Any]] = None


@dataclass
class ViewResult:
    """Decoded ``_view`` response."""
    total_rows: int = 0
    offset: int = 0
    rows: List[ViewRow] = field(default_factory=list)

    @property
    def docs(self) -> List[Dict[str, Any]]:
        """Documents of rows queried with ``include_docs=true``."""
        return [row.doc for row in self.rows if row.doc is not None]


def encode_view_params(params: Dict[str, Any]) -> Dict[str, str]:
    """
    Encode view query parameters the way CouchDB expects them.

    Keys are JSON values, booleans are lowercase literals, ``None`` is dropped.
    """
    encoded: Dict[str, str] = {}
    for name, value in params.items():
        if value is None:
            continue
        if name in _JSON_PARAMS:
            encoded[name] = json.dumps(value)
        elif isinstance(value, bool):
            encoded[name] = "true" if value else "false"
        else:
            encoded[name] = str(value)
    return encoded


def document_path(database: str, doc_id: str) -> str:
    """URL path of a document; ``_design/`` stays literal, the rest is quoted."""
    if doc_id.startswith(DESIGN_PREFIX):
        name = doc_id[len(DESIGN_PREFIX):]
        return f"/{database}/{DESIGN_PREFIX}{quote(name, safe='')}"
    return f"/{database}/{quote(doc_id, safe='')}"


class CouchDBClient:
    """
    Async CouchDB client bound to one database.

    Usage:
        async with CouchDBClient("http://localhost:5984", "cms") as couch:
            doc = await couch.get("page:about")
    """

    def __init__(
        self,
        url: str,
        database: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.database = database
        self.username = username
        self.password = password
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    async def initialize(self) -> None:
        """Create the shared HTTP client."""
        if self._client is not None:
            return
        auth = None
        if self.username:
            auth = httpx.BasicAuth(self.username, self.password or "")
        self._client = httpx.AsyncClient(
            base_url=self.url,
            auth=auth,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )
        logger.info(f"CouchDB client initialized (url={self.url}, db={self.database})")

    async def close(self) -> None:
        """Close HTTP connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("CouchDB connections closed")

    async def __aenter__(self) -> "CouchDBClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        doc_id: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        if self._client is None:
            await self.initialize()
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"CouchDB {operation} failed: {e}")
            raise InternalError(
                f"couchdb {operation} failed: {e}",
                backend="couchdb",
                cause=e,
            ) from e
        self._raise_for_status(response, operation, doc_id)
        return response

    @staticmethod
    def _raise_for_status(
        response: httpx.Response,
        operation: str,
        doc_id: Optional[str],
    ) -> None:
        if response.is_success:
            return

        reason = ""
        try:
            body = response.json()
            reason = body.get("reason") or body.get("error") or ""
        except ValueError:
            reason = response.text

        subject = doc_id or response.request.url.path
        message = f"couchdb {operation} {subject}: {response.status_code} {reason}".strip()

        if response.status_code == 404:
            raise NotFoundError(message, identifier=doc_id)
        if response.status_code in (409, 412):
            conflict = (
                ConflictReason.STALE_REVISION
                if operation in ("update", "delete")
                else ConflictReason.ALREADY_EXISTS
            )
            raise ConflictError(message, reason=conflict, identifier=doc_id)
        if response.status_code == 400:
            raise InvalidArgumentError(message)
        raise InternalError(message, backend="couchdb")

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def get(self, doc_id: str) -> Dict[str, Any]:
        """Fetch a document. Raises NotFoundError if absent."""
        response = await self._request(
            "GET", document_path(self.database, doc_id), "get", doc_id
        )
        return response.json()

    async def put(
        self,
        doc_id: str,
        doc: Dict[str, Any],
        operation: str = "put",
    ) -> DocumentResult:
        """
        Write a full document.

        The document must carry the current ``_rev`` to overwrite an existing
        one; otherwise CouchDB answers 409 and ConflictError is raised.
        """
        body = dict(doc)
        if body.get("_rev") is None:
            body.pop("_rev", None)
        response = await self._request(
            "PUT",
            document_path(self.database, doc_id),
            operation,
            doc_id,
            json=body,
        )
        result = response.json()
        return DocumentResult(id=result["id"], rev=result["rev"])

    async def delete(self, doc_id: str, rev: str) -> DocumentResult:
        """Delete the given revision. A stale revision raises ConflictError."""
        response = await self._request(
            "DELETE",
            document_path(self.database, doc_id),
            "delete",
            doc_id,
            params={"rev": rev},
        )
        result = response.json()
        return DocumentResult(id=result.get("id", doc_id), rev=result["rev"])

    async def current_rev(self, doc_id: str) -> Optional[str]:
        """Current revision of a document, ``None`` when it does not exist."""
        try:
            doc = await self.get(doc_id)
        except NotFoundError:
            return None
        return doc.get("_rev")

    async def upsert(self, doc_id: str, doc: Dict[str, Any]) -> DocumentResult:
        """Create or overwrite regardless of the stored revision."""
        body = dict(doc)
        rev = await self.current_rev(doc_id)
        if rev:
            body["_rev"] = rev
        else:
            body.pop("_rev", None)
        return await self.put(doc_id, body, operation="upsert")

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    async def query(self, design: str, view: str, **params: Any) -> ViewResult:
        """
        Query ``_design/{design}/_view/{view}``.

        Usage:
            result = await couch.query(
                "pages", "by_status",
                startkey=["published", {}], endkey=["published"],
                descending=True, include_docs=True, limit=20,
            )
        """
        path = f"/{self.database}/{DESIGN_PREFIX}{design}/_view/{view}"
        response = await self._request(
            "GET",
            path,
            "query",
            f"{design}/{view}",
            params=encode_view_params(params),
        )
        payload = response.json()
        rows = [
            ViewRow(
                id=row.get("id"),
                key=row.get("key"),
                value=row.get("value"),
                doc=row.get("doc"),
            )
            for row in payload.get("rows", [])
        ]
        return ViewResult(
            total_rows=payload.get("total_rows", len(rows)),
            offset=payload.get("offset", 0),
            rows=rows,
        )

    async def create_design_document(
        self, name: str, design: Dict[str, Any]
    ) -> DocumentResult:
        """Install or replace ``_design/{name}``."""
        doc_id = f"{DESIGN_PREFIX}{name}"
        result = await self.upsert(doc_id, {"_id": doc_id, **design})
        logger.info(f"Design document {doc_id} installed (rev={result.rev})")
        return result

    # -------------------------------------------------------------------------
    # Database administration
    # -------------------------------------------------------------------------

    async def db_exists(self) -> bool:
        try:
            await self._request("HEAD", f"/{self.database}", "db_exists")
        except NotFoundError:
            return False
        return True

    async def create_db(self) -> bool:
        """Create the database. Returns False if it already existed."""
        try:
            await self._request("PUT", f"/{self.database}", "create_db")
        except ConflictError:
            return False
        logger.info(f"CouchDB database {self.database} created")
        return True

    async def health_check(self) -> HealthCheckResult:
        """Ping the server root and the database."""
        start = time.perf_counter()
        try:
            response = await self._request("GET", "/", "ping")
            exists = await self.db_exists()
        except ContentStoreError as e:
            return HealthCheckResult.unhealthy_result(
                component="couchdb",
                message=str(e),
                details={"url": self.url, "database": self.database},
            )
        latency = (time.perf_counter() - start) * 1000
        details = {
            "database": self.database,
            "database_exists": exists,
            "version": response.json().get("version"),
        }
        if not exists:
            return HealthCheckResult.unhealthy_result(
                component="couchdb",
                message=f"database {self.database} does not exist",
                details=details,
            )
        return HealthCheckResult.healthy_result(
            component="couchdb", latency_ms=latency, details=details
        )

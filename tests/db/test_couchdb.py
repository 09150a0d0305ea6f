"""
Tests for db/couchdb.py - CouchDB Client.

Covers:
- View parameter encoding and document paths
- Document get/put/delete with revisions
- HTTP status mapping onto the error taxonomy
- Database administration and health check
"""
import httpx
import pytest


# =============================================================================
# Encoding Tests
# =============================================================================

class TestEncodeViewParams:
    """Tests for view query parameter encoding."""

    def test_keys_are_json(self):
        from db.couchdb import encode_view_params

        encoded = encode_view_params({
            "key": "about",
            "startkey": ["published"],
            "endkey": ["published", {}],
        })

        assert encoded == {
            "key": '"about"',
            "startkey": '["published"]',
            "endkey": '["published", {}]',
        }

    def test_booleans_and_numbers(self):
        from db.couchdb import encode_view_params

        encoded = encode_view_params({"include_docs": True, "descending": False, "limit": 20})

        assert encoded == {"include_docs": "true", "descending": "false", "limit": "20"}

    def test_none_is_dropped(self):
        from db.couchdb import encode_view_params

        assert encode_view_params({"key": None, "skip": 0}) == {"skip": "0"}


class TestDocumentPath:

    def test_composite_ids_are_quoted(self):
        from db.couchdb import document_path

        assert document_path("cms", "page:about") == "/cms/page%3Aabout"
        assert document_path("cms", "media:a/b.png") == "/cms/media%3Aa%2Fb.png"

    def test_design_prefix_stays_literal(self):
        from db.couchdb import document_path

        assert document_path("cms", "_design/pages") == "/cms/_design/pages"


# =============================================================================
# Document Tests
# =============================================================================

class TestCouchDBDocuments:
    """Round trips through the in-memory server."""

    @pytest.mark.asyncio
    async def test_put_then_get(self, couch_client):
        result = await couch_client.put("page:about", {"type": "page", "slug": "about"})

        doc = await couch_client.get("page:about")

        assert result.id == "page:about"
        assert result.rev.startswith("1-")
        assert doc["slug"] == "about"
        assert doc["_rev"] == result.rev

    @pytest.mark.asyncio
    async def test_put_drops_none_rev(self, couch_client, couch_server):
        await couch_client.put("page:about", {"slug": "about", "_rev": None})

        assert "_rev" not in couch_server.requests[-1].content.decode()

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, couch_client):
        from core.errors import NotFoundError

        with pytest.raises(NotFoundError) as exc_info:
            await couch_client.get("page:missing")

        assert exc_info.value.identifier == "page:missing"

    @pytest.mark.asyncio
    async def test_create_over_existing_is_already_exists(self, couch_client):
        from core.errors import ConflictError, ConflictReason

        await couch_client.put("page:about", {"slug": "about"}, operation="create")

        with pytest.raises(ConflictError) as exc_info:
            await couch_client.put("page:about", {"slug": "about"}, operation="create")

        assert exc_info.value.reason == ConflictReason.ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_update_with_stale_rev_is_stale_revision(self, couch_client):
        from core.errors import ConflictError, ConflictReason

        first = await couch_client.put("page:about", {"slug": "about"})
        await couch_client.put("page:about", {"slug": "about", "_rev": first.rev})

        with pytest.raises(ConflictError) as exc_info:
            await couch_client.put(
                "page:about", {"slug": "about", "_rev": first.rev}, operation="update"
            )

        assert exc_info.value.reason == ConflictReason.STALE_REVISION

    @pytest.mark.asyncio
    async def test_delete_requires_current_rev(self, couch_client):
        from core.errors import ConflictError, NotFoundError

        first = await couch_client.put("user:a@example.com", {"email": "a@example.com"})
        second = await couch_client.put(
            "user:a@example.com", {"email": "a@example.com", "_rev": first.rev}
        )

        with pytest.raises(ConflictError):
            await couch_client.delete("user:a@example.com", first.rev)

        await couch_client.delete("user:a@example.com", second.rev)

        with pytest.raises(NotFoundError):
            await couch_client.get("user:a@example.com")

    @pytest.mark.asyncio
    async def test_upsert_overwrites_without_rev(self, couch_client):
        await couch_client.put("page:about", {"title": "Old"})

        result = await couch_client.upsert("page:about", {"title": "New"})

        assert result.rev.startswith("2-")
        assert (await couch_client.get("page:about"))["title"] == "New"

    @pytest.mark.asyncio
    async def test_current_rev_of_missing_doc(self, couch_client):
        assert await couch_client.current_rev("page:none") is None


# =============================================================================
# Status Mapping Tests
# =============================================================================

class TestStatusMapping:

    @staticmethod
    def _client(status: int, body=None):
        from db.couchdb import CouchDBClient

        transport = httpx.MockTransport(lambda request: httpx.Response(status, json=body or {}))
        return CouchDBClient("http://couch.test", "cms", transport=transport)

    @pytest.mark.asyncio
    async def test_bad_request_is_invalid_argument(self):
        from core.errors import InvalidArgumentError

        client = self._client(400, {"error": "bad_request", "reason": "invalid UTF-8 JSON"})

        with pytest.raises(InvalidArgumentError, match="invalid UTF-8 JSON"):
            await client.get("page:x")

    @pytest.mark.asyncio
    async def test_server_error_is_internal(self):
        from core.errors import InternalError

        client = self._client(500, {"error": "unknown_error"})

        with pytest.raises(InternalError) as exc_info:
            await client.get("page:x")

        assert exc_info.value.backend == "couchdb"

    @pytest.mark.asyncio
    async def test_transport_failure_is_internal(self):
        from core.errors import InternalError
        from db.couchdb import CouchDBClient

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = CouchDBClient("http://couch.test", "cms", transport=httpx.MockTransport(refuse))

        with pytest.raises(InternalError) as exc_info:
            await client.get("page:x")

        assert isinstance(exc_info.value.cause, httpx.ConnectError)


# =============================================================================
# View Tests
# =============================================================================

class TestCouchDBViews:

    @pytest.mark.asyncio
    async def test_query_decodes_rows(self, couch_client):
        await couch_client.put("page:a", {"type": "page", "slug": "a", "created_at": "2024-01-01T00:00:00.000000Z"})
        await couch_client.put("page:b", {"type": "page", "slug": "b", "created_at": "2024-01-02T00:00:00.000000Z"})

        result = await couch_client.query("pages", "all", include_docs=True, descending=True)

        assert [row.id for row in result.rows] == ["page:b", "page:a"]
        assert [doc["slug"] for doc in result.docs] == ["b", "a"]
        assert result.total_rows == 2

    @pytest.mark.asyncio
    async def test_missing_view_is_not_found(self, couch_client):
        from core.errors import NotFoundError

        with pytest.raises(NotFoundError):
            await couch_client.query("pages", "no_such_view")

    @pytest.mark.asyncio
    async def test_setup_views_installs_every_design(self, couch_client, couch_server):
        from db.views import DESIGN_DOCUMENTS, setup_views

        count = await setup_views(couch_client)
        await setup_views(couch_client)

        assert count == len(DESIGN_DOCUMENTS)
        for name in DESIGN_DOCUMENTS:
            design = couch_server.docs[f"_design/{name}"]
            assert design["_rev"].startswith("2-")
            assert set(design["views"]) == set(DESIGN_DOCUMENTS[name]["views"])


# =============================================================================
# Administration Tests
# =============================================================================

class TestCouchDBAdministration:

    @pytest.mark.asyncio
    async def test_create_db(self):
        from db.couchdb import CouchDBClient
        from tests.support.fake_couch import FakeCouchServer

        server = FakeCouchServer(database="cms", db_exists=False)
        client = CouchDBClient("http://couch.test", "cms", transport=server.transport())

        assert await client.db_exists() is False
        assert await client.create_db() is True
        assert await client.create_db() is False
        assert await client.db_exists() is True

    @pytest.mark.asyncio
    async def test_health_check_reports_version(self, couch_client):
        result = await couch_client.health_check()

        assert result.healthy
        assert result.component == "couchdb"
        assert result.details["version"] == "3.3.3"

    @pytest.mark.asyncio
    async def test_health_check_unreachable(self):
        from db.couchdb import CouchDBClient

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = CouchDBClient("http://couch.test", "cms", transport=httpx.MockTransport(refuse))

        result = await client.health_check()

        assert not result.healthy
        assert result.details["database"] == "cms"

    @pytest.mark.asyncio
    async def test_basic_auth_header(self, couch_client, couch_server):
        await couch_client.db_exists()

        assert couch_server.requests[-1].headers["authorization"].startswith("Basic ")

"""
Tests for cli/main.py.

Commands are invoked through typer's CliRunner; the async helpers that talk
to a backend are patched, and tested on their own against the fake stores.
"""
import pytest
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from db.interfaces import HealthCheckResult

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(clean_env):
    with patch("cli.main.setup_logging"):
        yield


def _report(failed: int = 0, dry_run: bool = False):
    from repositories.migration import MigrationReport

    report = MigrationReport(dry_run=dry_run)
    report.for_entity("pages").copied = 3
    report.for_entity("users").skipped = 1
    if failed:
        entity = report.for_entity("media")
        entity.failed = failed
        entity.failures.append("media:logo.png")
    return report


# =============================================================================
# Commands
# =============================================================================

class TestStatusCommand:

    def test_healthy(self):
        from cli.main import app

        result_value = HealthCheckResult.healthy_result(
            "couchdb", latency_ms=1.5, details={"version": "3.3.3"}
        )
        with patch("cli.main._health", AsyncMock(return_value=result_value)):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "couchdb" in result.output
        assert "healthy" in result.output
        assert "version=3.3.3" in result.output

    def test_unhealthy_exits_nonzero(self):
        from cli.main import app

        result_value = HealthCheckResult.unhealthy_result("postgres", "connection refused")
        with patch("cli.main._health", AsyncMock(return_value=result_value)):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "connection refused" in result.output

    def test_secrets_are_not_printed(self):
        from cli.main import app

        result_value = HealthCheckResult.healthy_result("couchdb", latency_ms=1.0)
        with patch.dict("os.environ", {"COUCHDB_PASSWORD": "hunter2"}), \
                patch("cli.main._health", AsyncMock(return_value=result_value)):
            result = runner.invoke(app, ["status"])

        assert "hunter2" not in result.output


class TestMigrateCommand:

    def test_report_is_displayed(self):
        from cli.main import app

        migrate = AsyncMock(return_value=_report())
        with patch("cli.main._migrate", migrate):
            result = runner.invoke(app, ["migrate", "--batch-size", "50"])

        assert result.exit_code == 0
        assert "Migration Report" in result.output
        assert "pages" in result.output
        assert migrate.await_args.args[1:] == (False, 50)

    def test_dry_run(self):
        from cli.main import app

        migrate = AsyncMock(return_value=_report(dry_run=True))
        with patch("cli.main._migrate", migrate):
            result = runner.invoke(app, ["migrate", "--dry-run"])

        assert result.exit_code == 0
        assert "dry run" in result.output
        assert migrate.await_args.args[1] is True

    def test_failures_exit_nonzero(self):
        from cli.main import app

        with patch("cli.main._migrate", AsyncMock(return_value=_report(failed=1))):
            result = runner.invoke(app, ["migrate"])

        assert result.exit_code == 1
        assert "media:logo.png" in result.output

    def test_store_error(self):
        from cli.main import app
        from core.errors import InternalError

        error = InternalError("couchdb get failed", backend="couchdb")
        with patch("cli.main._migrate", AsyncMock(side_effect=error)):
            result = runner.invoke(app, ["migrate"])

        assert result.exit_code == 1
        assert "couchdb get failed" in result.output

    def test_batch_size_must_be_positive(self):
        from cli.main import app

        result = runner.invoke(app, ["migrate", "--batch-size", "0"])

        assert result.exit_code != 0


class TestInitCommand:

    def test_summary_is_printed(self):
        from cli.main import app

        summary = "Database cms created; 5 design documents installed"
        with patch("cli.main._init_backend", AsyncMock(return_value=summary)):
            result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "5 design documents installed" in result.output


# =============================================================================
# Backend helpers
# =============================================================================

class TestBackendHelpers:

    @pytest.mark.asyncio
    async def test_init_couchdb(self, couch_client, couch_server):
        from cli.main import _init_backend
        from config import Config
        from db.views import DESIGN_DOCUMENTS

        with patch("cli.main.create_client", return_value=couch_client):
            summary = await _init_backend(Config())

        assert "already existed" in summary
        assert f"{len(DESIGN_DOCUMENTS)} design documents installed" in summary
        assert "_design/pages" in couch_server.docs
        assert not couch_client.is_initialized

    @pytest.mark.asyncio
    async def test_init_postgres(self, postgres_client):
        from cli.main import _init_backend
        from config import Config

        with patch("cli.main.create_client", return_value=postgres_client), \
                patch.object(postgres_client, "initialize"), \
                patch.object(postgres_client, "create_tables") as create_tables, \
                patch.object(postgres_client, "close") as close:
            summary = await _init_backend(Config())

        assert summary == "Tables created"
        create_tables.assert_awaited_once()
        close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health(self, couch_client):
        from cli.main import _health
        from config import Config

        with patch("cli.main.create_client", return_value=couch_client):
            result = await _health(Config())

        assert result.healthy
        assert result.component == "couchdb"
        assert not couch_client.is_initialized

"""
Content Store - Main CLI Application

Operational commands for the storage layer: preparing a backend, checking
its health and copying CouchDB data into PostgreSQL.
"""
import asyncio
import json
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from config import Config, StorageBackend, reload_config
from core.errors import ContentStoreError
from db.couchdb import CouchDBClient
from db.interfaces import HealthCheckResult
from db.postgres import PostgresClient
from db.views import setup_views
from observability.logging import get_logger, setup_logging
from repositories.factory import create_client, open_backend
from repositories.migration import MigrationReport, RepositoryMigrator

# Initialize app
app = typer.Typer(
    name="contentstore",
    help="Content Store - CMS storage layer (CouchDB / PostgreSQL)",
    add_completion=False,
)

console = Console()

logger = get_logger("contentstore.cli")


def _load_config() -> Config:
    config = reload_config()
    setup_logging(config.logging)
    for problem in config.validate():
        console.print(f"[yellow]Warning: {problem}[/yellow]")
    return config


def _fail(error: ContentStoreError) -> None:
    console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(1)


@app.command()
def init():
    """Create the database and views (CouchDB) or the tables (PostgreSQL)."""
    config = _load_config()
    console.print(f"[bold]Initializing {config.backend.value} backend[/bold]")
    try:
        summary = asyncio.run(_init_backend(config))
    except ContentStoreError as e:
        _fail(e)
    logger.info("Backend initialized", backend=config.backend.value, summary=summary)
    console.print(f"[green]{summary}[/green]")


@app.command()
def status():
    """Show the sanitized configuration and backend health."""
    config = _load_config()
    console.print(Panel.fit(
        "[bold blue]Content Store[/bold blue]",
        border_style="blue",
    ))
    console.print_json(json.dumps(config.to_dict()))

    result = asyncio.run(_health(config))

    table = Table(title="Component Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Latency (ms)", justify="right")
    table.add_column("Details")
    state = "[green]healthy[/green]" if result.healthy else "[red]unhealthy[/red]"
    details = ", ".join(f"{k}={v}" for k, v in result.details.items()) or result.message
    table.add_row(result.component, state, f"{result.latency_ms:.1f}", details)
    console.print(table)

    if not result.healthy:
        raise typer.Exit(1)


@app.command()
def migrate(
    dry_run: bool = typer.Option(False, "--dry-run", help="Count entities without writing"),
    batch_size: int = typer.Option(100, "--batch-size", "-b", min=1, help="Entities per page"),
):
    """Copy every entity from CouchDB into PostgreSQL. Safe to re-run."""
    config = _load_config()
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Migrating CouchDB -> PostgreSQL...", total=None)
        try:
            report = asyncio.run(_migrate(config, dry_run, batch_size))
        except ContentStoreError as e:
            _fail(e)

    _display_report(report)
    if not report.succeeded:
        raise typer.Exit(1)


async def _init_backend(config: Config) -> str:
    client = create_client(config)
    await client.initialize()
    try:
        if isinstance(client, CouchDBClient):
            created = await client.create_db()
            count = await setup_views(client)
            state = "created" if created else "already existed"
            return f"Database {client.database} {state}; {count} design documents installed"
        if isinstance(client, PostgresClient):
            await client.create_tables()
            return "Tables created"
        raise ContentStoreError(f"Unsupported client {type(client).__name__}")
    finally:
        await client.close()


async def _health(config: Config) -> HealthCheckResult:
    client = create_client(config)
    await client.initialize()
    try:
        return await client.health_check()
    finally:
        await client.close()


async def _migrate(config: Config, dry_run: bool, batch_size: int) -> MigrationReport:
    source = await open_backend(config, StorageBackend.COUCHDB)
    try:
        target = await open_backend(config, StorageBackend.POSTGRES)
        try:
            migrator = RepositoryMigrator(source, target, batch_size=batch_size)
            return await migrator.migrate_all(dry_run=dry_run)
        finally:
            await target.close()
    finally:
        await source.close()


def _display_report(report: MigrationReport):
    """Display migration report as rich table."""
    title = "Migration Report (dry run)" if report.dry_run else "Migration Report"
    table = Table(title=title)
    table.add_column("Entity", style="cyan")
    table.add_column("Copied", style="green", justify="right")
    table.add_column("Skipped", style="yellow", justify="right")
    table.add_column("Failed", style="red", justify="right")

    for name, entity in report.entities.items():
        table.add_row(name, str(entity.copied), str(entity.skipped), str(entity.failed))
    table.add_row("[bold]total[/bold]", str(report.copied), str(report.skipped), str(report.failed))
    console.print(table)

    failures: List[str] = [
        failure for entity in report.entities.values() for failure in entity.failures
    ]
    for failure in failures:
        console.print(f"  - [red]{failure}[/red]")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()

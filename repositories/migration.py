"""
Content Store - Backend Migration

Copies every entity from one backend's repositories into another's, typically
CouchDB into PostgreSQL. Only the repository interfaces are used, so ids,
slugs and timestamps go through the same mapping as normal traffic.

Re-running is safe: an entity the target already holds raises ConflictError
on create and is counted as skipped.

Usage:
    source = await open_backend(config, StorageBackend.COUCHDB)
    target = await open_backend(config, StorageBackend.POSTGRES)
    report = await RepositoryMigrator(source, target).migrate_all()
"""
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Tuple

from core.errors import ConflictError, ContentStoreError
from db.interfaces import ListOptions, SortOrder
from observability.logging import LogContext, get_logger
from repositories.factory import Repositories

logger = get_logger("contentstore.repositories.migration")

# Users first so post authors and media uploaders exist before their content.
ENTITY_ORDER: Tuple[str, ...] = ("users", "pages", "blog_posts", "media", "contacts")


@dataclass
class EntityReport:
    """Outcome for one entity type."""
    entity: str
    copied: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def seen(self) -> int:
        return self.copied + self.skipped + self.failed


@dataclass
class MigrationReport:
    """Per-entity copied/skipped/failed counts of one migration run."""
    dry_run: bool = False
    entities: Dict[str, EntityReport] = field(default_factory=dict)

    def for_entity(self, entity: str) -> EntityReport:
        if entity not in self.entities:
            self.entities[entity] = EntityReport(entity=entity)
        return self.entities[entity]

    @property
    def copied(self) -> int:
        return sum(report.copied for report in self.entities.values())

    @property
    def skipped(self) -> int:
        return sum(report.skipped for report in self.entities.values())

    @property
    def failed(self) -> int:
        return sum(report.failed for report in self.entities.values())

    @property
    def succeeded(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "copied": self.copied,
            "skipped": self.skipped,
            "failed": self.failed,
            "entities": {
                name: {
                    "copied": report.copied,
                    "skipped": report.skipped,
                    "failed": report.failed,
                    "failures": list(report.failures),
                }
                for name, report in self.entities.items()
            },
        }


class RepositoryMigrator:
    """Pages entities out of ``source`` in creation order and creates them in ``target``."""

    def __init__(self, source: Repositories, target: Repositories, batch_size: int = 100):
        if source.backend == target.backend:
            logger.warning("Migrating a backend onto itself", backend=source.backend.value)
        self.source = source
        self.target = target
        self.batch_size = batch_size

    async def _iterate(self, entity: str) -> AsyncIterator[Any]:
        repository = getattr(self.source, entity)
        options = ListOptions(limit=self.batch_size, sort_order=SortOrder.ASC)
        while True:
            batch = await repository.list(options)
            for item in batch:
                yield item
            if len(batch) < options.limit:
                return
            options = options.next_page()

    async def migrate_entity(self, entity: str, report: MigrationReport) -> EntityReport:
        entity_report = report.for_entity(entity)
        target = getattr(self.target, entity)

        async for item in self._iterate(entity):
            if report.dry_run:
                entity_report.copied += 1
                continue
            source_id = item.id
            # Revisions belong to the source store.
            item.rev = None
            try:
                await target.create(item)
            except ConflictError:
                entity_report.skipped += 1
            except ContentStoreError as e:
                entity_report.failed += 1
                entity_report.failures.append(source_id)
                logger.warning(
                    "Entity migration failed",
                    entity=entity,
                    source_id=source_id,
                    error_code=e.error_code,
                    error=e.message,
                )
            else:
                entity_report.copied += 1

        logger.info(
            "Entity migrated",
            entity=entity,
            copied=entity_report.copied,
            skipped=entity_report.skipped,
            failed=entity_report.failed,
        )
        return entity_report

    async def migrate_all(self, dry_run: bool = False) -> MigrationReport:
        report = MigrationReport(dry_run=dry_run)
        with LogContext(
            source=self.source.backend.value,
            target=self.target.backend.value,
            dry_run=dry_run,
        ):
            for entity in ENTITY_ORDER:
                await self.migrate_entity(entity, report)
            logger.info(
                "Migration finished",
                copied=report.copied,
                skipped=report.skipped,
                failed=report.failed,
            )
        return report

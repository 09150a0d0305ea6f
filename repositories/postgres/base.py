"""
Shared machinery for the PostgreSQL repositories.

Every repository here follows PARTIAL_PATCH update semantics and has no
concurrency control: an ``update`` keeps the stored value of every field the
caller left as ``None``, and ``expected_rev`` is accepted but ignored.

Statements run on the transaction-bound ``Queries`` of an enclosing unit of
work when there is one, otherwise on a session opened for the single call.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, ClassVar, Dict, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from core.errors import NotFoundError, error_context
from db.interfaces import (
    ConcurrencyControl,
    IRepository,
    ListOptions,
    UpdateSemantics,
)
from db.postgres import PostgresClient, translate_db_error
from db.queries import Queries
from db.unit_of_work import current_queries
from observability.logging import get_logger

V = TypeVar("V")


def patch_values(**candidates: Any) -> Dict[str, Any]:
    """Patch rule: a column the caller left as None keeps its stored value."""
    return {key: value for key, value in candidates.items() if value is not None}


class PostgresRepository(IRepository):
    """Base class binding a repository to one table."""

    backend: ClassVar[str] = "postgres"
    update_semantics: ClassVar[UpdateSemantics] = UpdateSemantics.PARTIAL_PATCH
    concurrency_control: ClassVar[ConcurrencyControl] = ConcurrencyControl.NONE

    entity_type: ClassVar[str]
    table: ClassVar[str]

    def __init__(self, client: PostgresClient):
        self._client = client
        self._logger = get_logger(f"contentstore.repositories.postgres.{self.table}")

    @property
    def component(self) -> str:
        return f"{self.table}.postgres"

    @asynccontextmanager
    async def _queries(
        self,
        operation: str,
        identifier: Optional[str] = None,
        **metadata: Any,
    ) -> AsyncGenerator[Queries, None]:
        """
        Statement handle for one repository call.

        SQLAlchemy failures, including those raised at commit, leave this
        block as ContentStoreError subclasses carrying the operation context.
        Driver and socket errors outside SQLAlchemy leave it as InternalError.
        """
        with error_context(operation, self.component, identifier=identifier, **metadata):
            try:
                queries = current_queries()
                if queries is not None:
                    yield queries
                else:
                    async with self._client.session() as session:
                        yield Queries(session)
            except SQLAlchemyError as e:
                raise translate_db_error(
                    e, operation, entity_type=self.entity_type, identifier=identifier
                ) from e

    def _not_found(self, identifier: str) -> NotFoundError:
        return NotFoundError(
            f"{self.entity_type} {identifier} not found",
            entity_type=self.entity_type,
            identifier=identifier,
        )

    def _require(self, record: Optional[V], identifier: str) -> V:
        if record is None:
            raise self._not_found(identifier)
        return record

    def _check_deleted(self, rowcount: int, identifier: str) -> None:
        if not rowcount:
            raise self._not_found(identifier)
        self._logger.info("Row deleted", identifier=identifier)

    @staticmethod
    def _window(options: Optional[ListOptions]) -> Dict[str, Any]:
        options = options or ListOptions()
        return {
            "limit": options.limit,
            "offset": options.offset,
            "descending": options.descending,
        }


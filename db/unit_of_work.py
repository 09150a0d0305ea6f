"""
Content Store - Relational Unit of Work

Runs a block of repository calls inside one database transaction. The
transaction-bound ``Queries`` handle travels in a ``ContextVar``; relational
repositories look it up with ``current_queries()`` before opening a session
of their own.

Usage:
    uow = SQLUnitOfWork(postgres_client)

    async with uow.transaction():
        await pages.create(page)
        await posts.create(post)   # both committed, or neither
"""
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncGenerator, Awaitable, Callable, Optional, TypeVar
import logging

from db.interfaces import IUnitOfWork
from db.postgres import PostgresClient
from db.queries import Queries


logger = logging.getLogger("contentstore.db.postgres")

T = TypeVar("T")

_current_queries: ContextVar[Optional[Queries]] = ContextVar(
    "contentstore_tx_queries", default=None
)


def current_queries() -> Optional[Queries]:
    """Transaction-bound query handle of the running unit of work, if any."""
    return _current_queries.get()


class SQLUnitOfWork(IUnitOfWork):
    """Unit of work over a PostgresClient session."""

    def __init__(self, client: PostgresClient):
        self._client = client

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Queries, None]:
        """
        Bind a transaction for the duration of the block.

        Commits when the block exits normally and rolls back on any exception.
        A nested call joins the enclosing transaction.
        """
        outer = _current_queries.get()
        if outer is not None:
            yield outer
            return

        async with self._client.session() as session:
            queries = Queries(session)
            token = _current_queries.set(queries)
            try:
                yield queries
            except Exception:
                logger.warning("Unit of work rolled back")
                raise
            finally:
                _current_queries.reset(token)

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        async with self.transaction():
            return await fn()

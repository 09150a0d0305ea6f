"""
Content Store - PostgreSQL Client with Async Support

Provides engine/session lifecycle using SQLAlchemy 2.0 and asyncpg, plus
translation of driver errors into the shared error taxonomy.
"""
from typing import Any, AsyncGenerator, Dict, Optional, Tuple
from contextlib import asynccontextmanager
import logging
import time

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import DBAPIError, NoResultFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker
)

from core.errors import (
    ConflictError,
    ConflictReason,
    ContentStoreError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from db.interfaces import HealthCheckResult
from db.models import Base


logger = logging.getLogger("contentstore.db.postgres")

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"
DATA_EXCEPTION_CLASS = "22"


def normalize_database_url(database_url: str) -> Tuple[URL, Dict[str, Any]]:
    """
    Coerce a libpq-style URL into an asyncpg SQLAlchemy URL.

    ``postgres://`` and ``postgresql://`` become ``postgresql+asyncpg://``.
    ``sslmode`` is not understood by asyncpg as a query parameter, so it is
    moved into the ``ssl`` connect argument.
    """
    url = make_url(database_url)
    if url.drivername in ("postgres", "postgresql", "postgresql+psycopg2"):
        url = url.set(drivername="postgresql+asyncpg")

    connect_args: Dict[str, Any] = {}
    query = dict(url.query)
    sslmode = query.pop("sslmode", None)
    if sslmode is not None:
        url = url.set(query=query)
        if isinstance(sslmode, tuple):
            sslmode = sslmode[-1]
        if sslmode != "disable":
            connect_args["ssl"] = sslmode
    return url, connect_args


def _sqlstate(exc: BaseException) -> Tuple[Optional[str], Optional[str]]:
    """SQLSTATE code and constraint name from a wrapped driver error."""
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            constraint = getattr(candidate, "constraint_name", None)
            if constraint is None:
                constraint = getattr(getattr(candidate, "__cause__", None), "constraint_name", None)
            return str(code), constraint
    return None, None


def translate_db_error(
    exc: BaseException,
    operation: str,
    entity_type: Optional[str] = None,
    identifier: Optional[str] = None,
) -> ContentStoreError:
    """
    Map a SQLAlchemy/asyncpg failure onto the shared taxonomy.

    Classification uses the SQLSTATE code carried by the driver exception,
    never the human-readable message.
    """
    if isinstance(exc, ContentStoreError):
        return exc
    if isinstance(exc, NoResultFound):
        return NotFoundError(
            f"{entity_type or 'row'} not found during {operation}",
            entity_type=entity_type,
            identifier=identifier,
            cause=exc,
        )

    code, constraint = _sqlstate(exc) if isinstance(exc, DBAPIError) else (None, None)
    subject = f"{entity_type} {identifier}" if identifier else (entity_type or "row")

    if code == UNIQUE_VIOLATION:
        return ConflictError(
            f"{subject} already exists",
            reason=ConflictReason.ALREADY_EXISTS,
            entity_type=entity_type,
            identifier=identifier,
            constraint=constraint,
            cause=exc,
        )
    if code in (FOREIGN_KEY_VIOLATION, NOT_NULL_VIOLATION) or (
        code is not None and code.startswith(DATA_EXCEPTION_CLASS)
    ):
        return InvalidArgumentError(
            f"invalid value for {subject} during {operation} (sqlstate {code})",
            field_name=constraint,
            cause=exc,
        )
    return InternalError(
        f"postgres {operation} failed for {subject}: {exc}",
        backend="postgres",
        cause=exc,
    )


class PostgresClient:
    """
    Async PostgreSQL client shared by all relational repositories.

    Features:
    - Connection pooling with asyncpg
    - Automatic session management (commit on success, rollback on error)
    - Schema creation from the ORM metadata
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        command_timeout: int = 60,
        echo: bool = False,
        connect_args: Optional[Dict[str, Any]] = None,
    ):
        self.database_url, url_connect_args = normalize_database_url(database_url)
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.command_timeout = command_timeout
        self.echo = echo
        self.connect_args = {**url_connect_args, **(connect_args or {})}

        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self) -> None:
        """
        Initialize database engine and session factory.

        Connection pool settings:
        - pool_pre_ping: Verify connections before use (handles stale connections)
        - pool_recycle: Recycle connections after 1800s to prevent timeouts
        - connect_args: asyncpg prepared statement cache and command timeout
        """
        if self._engine is not None:
            return
        self._engine = create_async_engine(
            self.database_url,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            echo=self.echo,
            pool_pre_ping=True,
            pool_recycle=1800,
            pool_timeout=self.pool_timeout,
            connect_args={
                "prepared_statement_cache_size": 100,
                "command_timeout": self.command_timeout,
                **self.connect_args,
            }
        )

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        logger.info(
            f"PostgreSQL client initialized (pool_size={self.pool_size}, "
            f"max_overflow={self.max_overflow})"
        )

    async def close(self) -> None:
        """Close database connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("PostgreSQL connections closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on any exception."""
        if not self._session_factory:
            await self.initialize()

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create all database tables."""
        if not self._engine:
            await self.initialize()
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created")

    async def drop_tables(self) -> None:
        """Drop all database tables."""
        if not self._engine:
            await self.initialize()
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            logger.info("Database tables dropped")

    async def health_check(self) -> HealthCheckResult:
        """Round-trip a trivial query through the pool."""
        start = time.perf_counter()
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            return HealthCheckResult.unhealthy_result(
                component="postgres",
                message=str(e),
                details={"url": self.database_url.render_as_string(hide_password=True)},
            )
        latency = (time.perf_counter() - start) * 1000
        return HealthCheckResult.healthy_result(
            component="postgres",
            latency_ms=latency,
            details={"pool_size": self.pool_size},
        )

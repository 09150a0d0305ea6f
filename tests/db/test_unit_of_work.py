"""
Tests for db/unit_of_work.py - transaction scoping for relational repositories.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock, Mock
from contextlib import asynccontextmanager


@pytest.fixture
def session():
    session = AsyncMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    session.execute = AsyncMock(return_value=result)
    return session


@pytest.fixture
def uow_client(postgres_client, session):
    @asynccontextmanager
    async def session_cm():
        yield session

    postgres_client._session_factory = Mock(side_effect=lambda: session_cm())
    return postgres_client


class TestSQLUnitOfWork:

    @pytest.mark.asyncio
    async def test_commits_on_success(self, uow_client, session):
        from db.queries import Queries
        from db.unit_of_work import SQLUnitOfWork, current_queries

        uow = SQLUnitOfWork(uow_client)

        assert current_queries() is None
        async with uow.transaction() as queries:
            assert isinstance(queries, Queries)
            assert current_queries() is queries
            assert queries.session is session
        assert current_queries() is None

        session.commit.assert_called_once()
        session.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, uow_client, session):
        from db.unit_of_work import SQLUnitOfWork, current_queries

        uow = SQLUnitOfWork(uow_client)

        with pytest.raises(RuntimeError):
            async with uow.transaction():
                raise RuntimeError("second write failed")

        session.rollback.assert_called_once()
        session.commit.assert_not_called()
        assert current_queries() is None

    @pytest.mark.asyncio
    async def test_nested_transaction_joins_outer(self, uow_client):
        from db.unit_of_work import SQLUnitOfWork

        uow = SQLUnitOfWork(uow_client)

        async with uow.transaction() as outer:
            async with uow.transaction() as inner:
                assert inner is outer

        uow_client._session_factory.assert_called_once()

    @pytest.mark.asyncio
    async def test_run_returns_result(self, uow_client, session):
        from db.unit_of_work import SQLUnitOfWork

        async def work():
            return 42

        assert await SQLUnitOfWork(uow_client).run(work) == 42
        session.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_repositories_share_the_transaction(self, uow_client, session):
        """Inside a unit of work a repository does not open its own session."""
        from core.errors import NotFoundError
        from db.unit_of_work import SQLUnitOfWork
        from repositories.postgres import PostgresPageRepository, PostgresUserRepository

        pages = PostgresPageRepository(uow_client)
        users = PostgresUserRepository(uow_client)

        with pytest.raises(NotFoundError):
            async with SQLUnitOfWork(uow_client).transaction():
                assert await users.list() == []
                await pages.get_by_slug("missing")

        assert session.execute.await_count == 2
        uow_client._session_factory.assert_called_once()
        session.rollback.assert_called_once()

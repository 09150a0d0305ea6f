"""
Content Store - Repository Factory

Composition root for the storage layer. The backend is chosen once, at
process start, from ``Config.backend``; consumers only ever see the
repository interfaces.

Usage:
    config = get_config()
    repos = await open_backend(config)
    try:
        page = await repos.pages.get_by_slug("about")
    finally:
        await repos.close()
"""
from dataclasses import dataclass
from typing import Optional, Union

from config import Config, StorageBackend
from core.errors import ConfigError
from db.couchdb import CouchDBClient
from db.interfaces import (
    IBlogPostRepository,
    IContactRepository,
    IMediaRepository,
    IPageRepository,
    IUnitOfWork,
    IUserRepository,
)
from db.postgres import PostgresClient
from db.unit_of_work import SQLUnitOfWork
from di.container import Container
from observability.logging import get_logger
from repositories.couchdb import (
    CouchDBBlogPostRepository,
    CouchDBContactRepository,
    CouchDBMediaRepository,
    CouchDBPageRepository,
    CouchDBUserRepository,
)
from repositories.postgres import (
    PostgresBlogPostRepository,
    PostgresContactRepository,
    PostgresMediaRepository,
    PostgresPageRepository,
    PostgresUserRepository,
)

logger = get_logger("contentstore.repositories.factory")

StoreClient = Union[CouchDBClient, PostgresClient]


@dataclass
class Repositories:
    """The five repositories of one backend, plus its unit of work if it has one."""

    backend: StorageBackend
    client: StoreClient
    pages: IPageRepository
    blog_posts: IBlogPostRepository
    media: IMediaRepository
    users: IUserRepository
    contacts: IContactRepository
    unit_of_work: Optional[IUnitOfWork] = None

    async def close(self) -> None:
        await self.client.close()


def build_couchdb_repositories(client: CouchDBClient) -> Repositories:
    return Repositories(
        backend=StorageBackend.COUCHDB,
        client=client,
        pages=CouchDBPageRepository(client),
        blog_posts=CouchDBBlogPostRepository(client),
        media=CouchDBMediaRepository(client),
        users=CouchDBUserRepository(client),
        contacts=CouchDBContactRepository(client),
    )


def build_postgres_repositories(client: PostgresClient) -> Repositories:
    return Repositories(
        backend=StorageBackend.POSTGRES,
        client=client,
        pages=PostgresPageRepository(client),
        blog_posts=PostgresBlogPostRepository(client),
        media=PostgresMediaRepository(client),
        users=PostgresUserRepository(client),
        contacts=PostgresContactRepository(client),
        unit_of_work=SQLUnitOfWork(client),
    )


def create_client(config: Config, backend: Optional[StorageBackend] = None) -> StoreClient:
    """Unconnected client for ``backend`` (defaults to the configured one)."""
    backend = backend or config.backend
    if backend == StorageBackend.COUCHDB:
        return CouchDBClient(
            url=config.couchdb.url,
            database=config.couchdb.database,
            username=config.couchdb.username,
            password=config.couchdb.password,
            timeout=config.couchdb.timeout,
        )
    if backend == StorageBackend.POSTGRES:
        return PostgresClient(
            database_url=config.postgres.database_url,
            pool_size=config.postgres.pool_size,
            max_overflow=config.postgres.max_overflow,
            pool_timeout=config.postgres.pool_timeout,
            command_timeout=config.postgres.command_timeout,
            echo=config.postgres.echo,
        )
    raise ConfigError(f"Unknown storage backend: {backend!r}", config_key="STORAGE_BACKEND")


def build_repositories(client: StoreClient) -> Repositories:
    if isinstance(client, CouchDBClient):
        return build_couchdb_repositories(client)
    if isinstance(client, PostgresClient):
        return build_postgres_repositories(client)
    raise ConfigError(f"Unsupported store client: {type(client).__name__}")


async def open_backend(
    config: Config, backend: Optional[StorageBackend] = None
) -> Repositories:
    """Connect the client for ``backend`` and build its repositories."""
    client = create_client(config, backend)
    await client.initialize()
    repositories = build_repositories(client)
    logger.info("Storage backend opened", backend=repositories.backend.value)
    return repositories


async def bootstrap(config: Config, container: Container) -> Repositories:
    """
    Open the configured backend and register it in ``container``.

    Registers the config, the client, every repository interface and, on the
    relational backend, ``IUnitOfWork``. The caller owns the returned bundle
    and must ``close()`` it.
    """
    repositories = await open_backend(config)
    container.register_instance(Config, config)
    container.register_instance(Repositories, repositories)
    container.register_instance(type(repositories.client), repositories.client)
    container.register_instance(IPageRepository, repositories.pages)
    container.register_instance(IBlogPostRepository, repositories.blog_posts)
    container.register_instance(IMediaRepository, repositories.media)
    container.register_instance(IUserRepository, repositories.users)
    container.register_instance(IContactRepository, repositories.contacts)
    if repositories.unit_of_work is not None:
        container.register_instance(IUnitOfWork, repositories.unit_of_work)
    return repositories

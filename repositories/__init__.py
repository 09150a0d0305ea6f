"""
Content Store - Repositories

Concrete repositories for both backends, the factory that picks one at
startup and the migrator that copies one into the other.

Usage:
    from repositories import open_backend

    repos = await open_backend(get_config())
    posts = await repos.blog_posts.list_published(ListOptions(limit=10))
"""
from repositories.factory import (
    Repositories,
    bootstrap,
    build_couchdb_repositories,
    build_postgres_repositories,
    create_client,
    open_backend,
)
from repositories.migration import EntityReport, MigrationReport, RepositoryMigrator

__all__ = [
    "Repositories",
    "bootstrap",
    "build_couchdb_repositories",
    "build_postgres_repositories",
    "create_client",
    "open_backend",
    "EntityReport",
    "MigrationReport",
    "RepositoryMigrator",
]

"""Relational (PostgreSQL) repository implementations."""
from repositories.postgres.base import PostgresRepository
from repositories.postgres.blog import PostgresBlogPostRepository
from repositories.postgres.contacts import PostgresContactRepository
from repositories.postgres.media import PostgresMediaRepository
from repositories.postgres.pages import PostgresPageRepository
from repositories.postgres.users import PostgresUserRepository

__all__ = [
    "PostgresRepository",
    "PostgresPageRepository",
    "PostgresBlogPostRepository",
    "PostgresMediaRepository",
    "PostgresUserRepository",
    "PostgresContactRepository",
]

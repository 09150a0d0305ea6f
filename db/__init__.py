"""
Content Store - Database Layer

Store adapters and the contracts they are consumed through:
- Interfaces: one repository contract per entity, plus ``IUnitOfWork``
- CouchDB: async HTTP client and the design documents (views)
- PostgreSQL: async engine/session client, ORM models, the query layer and
  the ContextVar-bound unit of work

Repository implementations live in ``repositories``; this package only
talks to the stores.

Usage:
    from db import CouchDBClient, setup_views

    async with CouchDBClient("http://localhost:5984", "cms") as couch:
        await couch.create_db()
        await setup_views(couch)
"""

# ============================================================================
# Interfaces
# ============================================================================

from db.interfaces import (
    DEFAULT_LIMIT,
    ConcurrencyControl,
    HealthCheckResult,
    IBlogPostRepository,
    IContactRepository,
    IMediaRepository,
    IPageRepository,
    IRepository,
    IUnitOfWork,
    IUserRepository,
    ListOptions,
    SortOrder,
    UpdateSemantics,
)

# ============================================================================
# Document store
# ============================================================================

from db.couchdb import CouchDBClient, DocumentResult, ViewResult, ViewRow
from db.views import DESIGN_DOCUMENTS, setup_views

# ============================================================================
# Relational store
# ============================================================================

from db.models import (
    Base,
    BlogPostRecord,
    CategoryRecord,
    ContactSubmissionRecord,
    MediaRecord,
    PageRecord,
    TagRecord,
    UserRecord,
)
from db.postgres import PostgresClient, normalize_database_url, translate_db_error
from db.queries import Queries
from db.unit_of_work import SQLUnitOfWork, current_queries

__all__ = [
    # Interfaces
    "DEFAULT_LIMIT",
    "SortOrder",
    "ListOptions",
    "UpdateSemantics",
    "ConcurrencyControl",
    "HealthCheckResult",
    "IRepository",
    "IPageRepository",
    "IBlogPostRepository",
    "IMediaRepository",
    "IUserRepository",
    "IContactRepository",
    "IUnitOfWork",
    # Document store
    "CouchDBClient",
    "DocumentResult",
    "ViewRow",
    "ViewResult",
    "DESIGN_DOCUMENTS",
    "setup_views",
    # Relational store
    "Base",
    "PageRecord",
    "BlogPostRecord",
    "CategoryRecord",
    "TagRecord",
    "MediaRecord",
    "UserRecord",
    "ContactSubmissionRecord",
    "PostgresClient",
    "normalize_database_url",
    "translate_db_error",
    "Queries",
    "SQLUnitOfWork",
    "current_queries",
]

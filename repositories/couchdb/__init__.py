"""Document store (CouchDB) repository implementations."""
from repositories.couchdb.base import CouchDBRepository, format_timestamp, parse_timestamp
from repositories.couchdb.blog import CouchDBBlogPostRepository
from repositories.couchdb.contacts import CouchDBContactRepository
from repositories.couchdb.media import CouchDBMediaRepository
from repositories.couchdb.pages import CouchDBPageRepository
from repositories.couchdb.users import CouchDBUserRepository

__all__ = [
    "CouchDBRepository",
    "CouchDBPageRepository",
    "CouchDBBlogPostRepository",
    "CouchDBMediaRepository",
    "CouchDBUserRepository",
    "CouchDBContactRepository",
    "format_timestamp",
    "parse_timestamp",
]

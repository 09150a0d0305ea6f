"""
Content Store - Repository Interfaces

Storage-agnostic contracts consumed by the service layer. Each entity has one
interface with two concrete implementations (document store and relational
store) chosen at process startup.

The two backends differ in two documented ways, and each implementation
declares which behaviour it follows:

- ``update_semantics``: FULL_REPLACE re-persists the whole entity;
  PARTIAL_PATCH keeps the stored value for every field left as ``None``.
- ``concurrency_control``: REVISION rejects a stale ``expected_rev`` with a
  ConflictError; NONE ignores the token (last writer wins).

Usage:
    from db.interfaces import IPageRepository, ListOptions

    class PageService:
        def __init__(self, pages: IPageRepository):
            self._pages = pages

        async def published(self):
            return await self._pages.list_by_status(
                PageStatus.PUBLISHED, ListOptions(limit=20)
            )
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    List,
    Optional,
    TypeVar,
)

from core.errors import InvalidArgumentError
from domain.entities import (
    BlogPost,
    ContactSubmission,
    ContactStatus,
    Media,
    Page,
    PageStatus,
    TermCount,
    User,
    UserRole,
)

T = TypeVar("T")

DEFAULT_LIMIT = 50


# =============================================================================
# LISTING AND CAPABILITIES
# =============================================================================


class SortOrder(str, Enum):
    """Creation-time ordering of listings."""
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, slots=True)
class ListOptions:
    """Pagination parameters shared by every listing operation."""
    limit: int = DEFAULT_LIMIT
    skip: int = 0
    sort_order: SortOrder = SortOrder.DESC

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise InvalidArgumentError(
                f"limit must be >= 1: {self.limit}", field_name="limit"
            )
        if self.skip < 0:
            raise InvalidArgumentError(
                f"skip must be >= 0: {self.skip}", field_name="skip"
            )

    @property
    def offset(self) -> int:
        """Alias for skip, for SQL queries."""
        return self.skip

    @property
    def descending(self) -> bool:
        return self.sort_order == SortOrder.DESC

    def next_page(self) -> "ListOptions":
        return ListOptions(
            limit=self.limit,
            skip=self.skip + self.limit,
            sort_order=self.sort_order,
        )


class UpdateSemantics(Enum):
    """How an implementation applies ``update``."""
    FULL_REPLACE = "full_replace"
    PARTIAL_PATCH = "partial_patch"


class ConcurrencyControl(Enum):
    """Whether an implementation honours the ``expected_rev`` precondition."""
    REVISION = "revision"
    NONE = "none"


@dataclass
class HealthCheckResult:
    """Result of a health check."""
    healthy: bool
    message: str
    component: str
    latency_ms: float
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def healthy_result(
        cls,
        component: str,
        latency_ms: float,
        message: str = "OK",
        details: Optional[Dict[str, Any]] = None,
    ) -> "HealthCheckResult":
        return cls(
            healthy=True,
            message=message,
            component=component,
            latency_ms=latency_ms,
            details=details or {},
        )

    @classmethod
    def unhealthy_result(
        cls,
        component: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ) -> "HealthCheckResult":
        return cls(
            healthy=False,
            message=message,
            component=component,
            latency_ms=0.0,
            details=details or {}
        )


# =============================================================================
# REPOSITORY INTERFACES
# =============================================================================


class IRepository(ABC):
    """
    Common capability tags.

    Concrete classes must set all three; callers and tests inspect them
    instead of assuming one behaviour across backends.
    """

    backend: ClassVar[str]
    update_semantics: ClassVar[UpdateSemantics]
    concurrency_control: ClassVar[ConcurrencyControl]


class IPageRepository(IRepository):
    """CRUD, listing and search over pages."""

    @abstractmethod
    async def create(self, page: Page) -> Page:
        """
        Persist a new page.

        Assigns ``page:{slug}`` as id and stamps timestamps. Raises
        ConflictError if the slug is taken.
        """
        pass

    @abstractmethod
    async def get_by_id(self, page_id: str) -> Page:
        """Fetch by external id. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    async def get_by_slug(self, slug: str) -> Page:
        """Fetch by slug. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    async def update(self, page: Page, expected_rev: Optional[str] = None) -> Page:
        """Persist changes according to ``update_semantics``."""
        pass

    @abstractmethod
    async def delete(self, page_id: str, expected_rev: Optional[str] = None) -> None:
        """Hard-delete. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    async def list(self, options: Optional[ListOptions] = None) -> List[Page]:
        """All pages regardless of status, ordered by creation time."""
        pass

    @abstractmethod
    async def list_by_status(
        self, status: PageStatus, options: Optional[ListOptions] = None
    ) -> List[Page]:
        pass

    @abstractmethod
    async def search(self, query: str, options: Optional[ListOptions] = None) -> List[Page]:
        """
        Prefix search over title, slug, SEO metadata and content text.

        Every token of at least two characters must match as a prefix. A
        query without such tokens returns an empty list.
        """
        pass


class IBlogPostRepository(IRepository):
    """CRUD, listing, search and taxonomy aggregates over blog posts."""

    @abstractmethod
    async def create(self, post: BlogPost) -> BlogPost:
        pass

    @abstractmethod
    async def get_by_id(self, post_id: str) -> BlogPost:
        pass

    @abstractmethod
    async def get_by_slug(self, slug: str) -> BlogPost:
        pass

    @abstractmethod
    async def update(
        self, post: BlogPost, expected_rev: Optional[str] = None
    ) -> BlogPost:
        pass

    @abstractmethod
    async def delete(self, post_id: str, expected_rev: Optional[str] = None) -> None:
        pass

    @abstractmethod
    async def list(self, options: Optional[ListOptions] = None) -> List[BlogPost]:
        pass

    @abstractmethod
    async def list_by_status(
        self, status: PageStatus, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        pass

    @abstractmethod
    async def list_published(
        self, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        """Posts for which ``is_published()`` holds now, newest publication first."""
        pass

    @abstractmethod
    async def list_by_author(
        self, author: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        pass

    @abstractmethod
    async def list_by_category(
        self, category_slug: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        """Posts in the category whose derived slug equals ``category_slug``."""
        pass

    @abstractmethod
    async def list_by_tag(
        self, tag_slug: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        pass

    @abstractmethod
    async def search(
        self, query: str, options: Optional[ListOptions] = None
    ) -> List[BlogPost]:
        pass

    @abstractmethod
    async def get_categories(self) -> List[TermCount]:
        """Categories with their published post counts."""
        pass

    @abstractmethod
    async def get_tags(self) -> List[TermCount]:
        pass


class IMediaRepository(IRepository):
    """Media metadata records."""

    @abstractmethod
    async def create(self, media: Media) -> Media:
        pass

    @abstractmethod
    async def get_by_id(self, media_id: str) -> Media:
        pass

    @abstractmethod
    async def get_by_filename(self, filename: str) -> Media:
        pass

    @abstractmethod
    async def update(self, media: Media, expected_rev: Optional[str] = None) -> Media:
        pass

    @abstractmethod
    async def delete(self, media_id: str, expected_rev: Optional[str] = None) -> None:
        pass

    @abstractmethod
    async def list(self, options: Optional[ListOptions] = None) -> List[Media]:
        pass

    @abstractmethod
    async def list_by_uploader(
        self, uploaded_by: str, options: Optional[ListOptions] = None
    ) -> List[Media]:
        pass


class IUserRepository(IRepository):
    """Admin panel accounts."""

    @abstractmethod
    async def create(self, user: User) -> User:
        pass

    @abstractmethod
    async def get_by_id(self, user_id: str) -> User:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> User:
        pass

    @abstractmethod
    async def update(self, user: User, expected_rev: Optional[str] = None) -> User:
        pass

    @abstractmethod
    async def delete(self, user_id: str, expected_rev: Optional[str] = None) -> None:
        pass

    @abstractmethod
    async def list(self, options: Optional[ListOptions] = None) -> List[User]:
        pass

    @abstractmethod
    async def list_by_role(
        self, role: UserRole, options: Optional[ListOptions] = None
    ) -> List[User]:
        pass


class IContactRepository(IRepository):
    """Contact form submissions."""

    @abstractmethod
    async def create(self, submission: ContactSubmission) -> ContactSubmission:
        """Persist a submission. Assigns ``contact:{uuid}`` when no id is given."""
        pass

    @abstractmethod
    async def get_by_id(self, submission_id: str) -> ContactSubmission:
        pass

    @abstractmethod
    async def update(
        self, submission: ContactSubmission, expected_rev: Optional[str] = None
    ) -> ContactSubmission:
        pass

    @abstractmethod
    async def delete(
        self, submission_id: str, expected_rev: Optional[str] = None
    ) -> None:
        pass

    @abstractmethod
    async def list(
        self, options: Optional[ListOptions] = None
    ) -> List[ContactSubmission]:
        pass

    @abstractmethod
    async def list_by_status(
        self, status: ContactStatus, options: Optional[ListOptions] = None
    ) -> List[ContactSubmission]:
        pass

    @abstractmethod
    async def count_by_status(self, status: ContactStatus) -> int:
        pass

    @abstractmethod
    async def search(
        self, query: str, options: Optional[ListOptions] = None
    ) -> List[ContactSubmission]:
        pass


# =============================================================================
# UNIT OF WORK
# =============================================================================


class IUnitOfWork(ABC):
    """
    Transactional boundary across several repository calls.

    Only the relational backend provides one. Repository calls made inside
    ``run`` or ``transaction`` share a single database transaction.

    Usage:
        async def publish_with_page():
            await posts.update(post)
            await pages.update(page)

        await uow.run(publish_with_page)
    """

    @abstractmethod
    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Execute ``fn`` in a transaction; commit on success, roll back on error."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[Any]:
        """Async context manager form of ``run``."""
        pass


__all__ = [
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
]

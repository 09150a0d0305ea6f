"""CouchDB user repository."""
from dataclasses import replace
from typing import Any, Dict, List, Optional

from core.errors import error_context
from core.identifiers import USER, make_document_id
from db.interfaces import IUserRepository, ListOptions
from db.views import USER_TYPE
from domain.entities import User, UserRole, utcnow
from repositories.couchdb.base import (
    CouchDBRepository,
    enum_value,
    format_timestamp,
    optional_enum,
    parse_timestamp,
)


class CouchDBUserRepository(CouchDBRepository, IUserRepository):
    entity_type = USER
    doc_type = USER_TYPE
    design = "users"

    @staticmethod
    def to_document(user: User) -> Dict[str, Any]:
        return {
            "email": user.email,
            "name": user.name,
            "password_hash": user.password_hash,
            "role": enum_value(user.role),
            "created_at": format_timestamp(user.created_at),
            "updated_at": format_timestamp(user.updated_at),
            "last_login_at": format_timestamp(user.last_login_at),
        }

    @staticmethod
    def from_document(doc: Dict[str, Any]) -> User:
        return User(
            email=doc["email"],
            name=doc.get("name"),
            password_hash=doc.get("password_hash"),
            role=optional_enum(UserRole, doc.get("role")),
            id=doc["_id"],
            rev=doc.get("_rev"),
            created_at=parse_timestamp(doc.get("created_at")),
            updated_at=parse_timestamp(doc.get("updated_at")),
            last_login_at=parse_timestamp(doc.get("last_login_at")),
        )

    async def create(self, user: User) -> User:
        user = replace(user)
        user.id = user.id or make_document_id(USER, user.email)
        with error_context("create", self.component, identifier=user.id):
            now = utcnow()
            user.created_at = user.created_at or now
            user.updated_at = user.updated_at or now
            if user.role is None:
                user.role = UserRole.EDITOR
            user.rev = await self._insert(user.id, self.to_document(user))
        # Never log the password hash.
        self._logger.info("User created", user_id=user.id, role=user.role.value)
        return user

    async def get_by_id(self, user_id: str) -> User:
        with error_context("get_by_id", self.component, identifier=user_id):
            return self.from_document(await self._fetch(user_id))

    async def get_by_email(self, email: str) -> User:
        with error_context("get_by_email", self.component, identifier=email):
            return self.from_document(await self._first_by_key("by_email", email))

    async def update(self, user: User, expected_rev: Optional[str] = None) -> User:
        user.id = user.id or make_document_id(USER, user.email)
        with error_context("update", self.component, identifier=user.id):
            user.updated_at = utcnow()
            user.rev = await self._replace(
                user.id, self.to_document(user), expected_rev or user.rev
            )
        return user

    async def delete(self, user_id: str, expected_rev: Optional[str] = None) -> None:
        with error_context("delete", self.component, identifier=user_id):
            await self._remove(user_id, expected_rev)

    async def list(self, options: Optional[ListOptions] = None) -> List[User]:
        with error_context("list", self.component):
            docs = await self._list_view("all", options)
            return [self.from_document(doc) for doc in docs]

    async def list_by_role(
        self, role: UserRole, options: Optional[ListOptions] = None
    ) -> List[User]:
        with error_context("list_by_role", self.component, identifier=role.value):
            docs = await self._list_view("by_role", options, key_prefix=role.value)
            return [self.from_document(doc) for doc in docs]

"""PostgreSQL user repository."""
from typing import List, Optional

from core.identifiers import USER, make_document_id, natural_key
from db.interfaces import IUserRepository, ListOptions
from db.models import UserRecord
from domain.entities import User, UserRole, utcnow
from repositories.postgres.base import PostgresRepository, patch_values


class PostgresUserRepository(PostgresRepository, IUserRepository):
    entity_type = USER
    table = "users"

    @staticmethod
    def to_entity(record: UserRecord) -> User:
        return User(
            email=record.email,
            name=record.name,
            password_hash=record.password_hash,
            role=UserRole(record.role),
            id=make_document_id(USER, record.email),
            created_at=record.created_at,
            updated_at=record.updated_at,
            last_login_at=record.last_login_at,
        )

    async def create(self, user: User) -> User:
        now = utcnow()
        async with self._queries("create", identifier=user.email) as q:
            record = await q.insert_user(
                email=user.email,
                name=user.name,
                password_hash=user.password_hash,
                role=(user.role or UserRole.EDITOR).value,
                last_login_at=user.last_login_at,
                created_at=user.created_at or now,
                updated_at=user.updated_at or now,
            )
            created = self.to_entity(record)
        self._logger.info("User created", user_id=created.id, role=created.role.value)
        return created

    async def get_by_id(self, user_id: str) -> User:
        return await self.get_by_email(natural_key(USER, user_id))

    async def get_by_email(self, email: str) -> User:
        async with self._queries("get_by_email", identifier=email) as q:
            record = self._require(await q.get_user_by_email(email), email)
            return self.to_entity(record)

    async def update(self, user: User, expected_rev: Optional[str] = None) -> User:
        email = natural_key(USER, user.id) if user.id else user.email
        async with self._queries("update", identifier=email) as q:
            record = self._require(await q.get_user_by_email(email), email)
            record = await q.update_user(
                record,
                updated_at=utcnow(),
                **patch_values(
                    email=user.email,
                    name=user.name,
                    password_hash=user.password_hash,
                    role=user.role.value if user.role is not None else None,
                    last_login_at=user.last_login_at,
                ),
            )
            return self.to_entity(record)

    async def delete(self, user_id: str, expected_rev: Optional[str] = None) -> None:
        email = natural_key(USER, user_id)
        async with self._queries("delete", identifier=email) as q:
            record = self._require(await q.get_user_by_email(email), email)
            self._check_deleted(await q.delete_user_by_id(record.id), user_id)

    async def list(self, options: Optional[ListOptions] = None) -> List[User]:
        async with self._queries("list") as q:
            records = await q.list_users_all(**self._window(options))
            return [self.to_entity(record) for record in records]

    async def list_by_role(
        self, role: UserRole, options: Optional[ListOptions] = None
    ) -> List[User]:
        async with self._queries("list_by_role", identifier=role.value) as q:
            records = await q.list_users_by_role(role.value, **self._window(options))
            return [self.to_entity(record) for record in records]

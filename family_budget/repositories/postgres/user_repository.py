"""
User Repository (PostgreSQL).

Soft delete only.  The partial unique index
``users_email_active_key ON users(email) WHERE is_active`` rejects a
second active user with the same address.
"""

from __future__ import annotations

from typing import Union

from family_budget.errors import NotFoundError
from family_budget.models.enums import UserRole
from family_budget.models.user import User
from family_budget.repositories.interfaces import UserRepository, UUIDLike
from family_budget.repositories.postgres.base import PostgresRepository
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_email, validate_enum, validate_uuid


class PostgresUserRepository(PostgresRepository, UserRepository):
    """Data access layer for User entities in PostgreSQL."""

    TABLE = "users"
    ENTITY = "user"

    def create(self, user: User) -> User:
        record = self._validated_user(user)
        now = utc_now()
        record = record.model_copy(
            update={"is_active": True, "created_at": now, "updated_at": now}
        )
        response = self._execute(
            self._table().insert(record.model_dump(mode="json")),
            detail=f"email {record.email}",
        )
        row = self._first(response)
        self._logger.info("User created: %s", record.id)
        return User.model_validate(row) if row else record

    def get_by_id(self, user_id: UUIDLike) -> User:
        uid = validate_uuid(user_id, "user_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("id", str(uid))
            .eq("is_active", True)
            .maybe_single()
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, uid)
        return User.model_validate(row)

    def get_by_email(self, email: str) -> User:
        normalized_email = validate_email(email)
        response = self._execute(
            self._table()
            .select("*")
            .eq("email", normalized_email)
            .eq("is_active", True)
            .maybe_single()
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, normalized_email)
        return User.model_validate(row)

    def get_by_family_id(self, family_id: UUIDLike) -> list[User]:
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("family_id", str(fid))
            .eq("is_active", True)
            .order("created_at")
        )
        return [User.model_validate(row) for row in self._rows(response)]

    def get_by_role(self, family_id: UUIDLike, role: Union[UserRole, str]) -> list[User]:
        fid = validate_uuid(family_id, "family_id")
        valid_role = validate_enum(role, UserRole, "role")
        response = self._execute(
            self._table()
            .select("*")
            .eq("family_id", str(fid))
            .eq("role", str(valid_role))
            .eq("is_active", True)
            .order("created_at")
        )
        return [User.model_validate(row) for row in self._rows(response)]

    def update(self, user: User) -> User:
        record = self._validated_user(user)
        response = self._execute(
            self._table()
            .update({
                "email": record.email,
                "password_hash": record.password_hash,
                "first_name": record.first_name,
                "last_name": record.last_name,
                "role": str(record.role),
                "updated_at": utc_now().isoformat(),
            })
            .eq("id", str(record.id))
            .eq("is_active", True),
            detail=f"email {record.email}",
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, record.id)
        return User.model_validate(row)

    def delete(self, user_id: UUIDLike, family_id: UUIDLike) -> None:
        uid = validate_uuid(user_id, "user_id")
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table()
            .update({"is_active": False, "updated_at": utc_now().isoformat()})
            .eq("id", str(uid))
            .eq("family_id", str(fid))
            .eq("is_active", True)
        )
        if not self._rows(response):
            raise NotFoundError(self.ENTITY, uid)
        self._logger.info("User deactivated: %s", uid)

    def update_last_login(self, user_id: UUIDLike) -> None:
        uid = validate_uuid(user_id, "user_id")
        now = utc_now().isoformat()
        response = self._execute(
            self._table()
            .update({"last_login": now, "updated_at": now})
            .eq("id", str(uid))
            .eq("is_active", True)
        )
        if not self._rows(response):
            raise NotFoundError(self.ENTITY, uid)

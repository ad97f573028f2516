"""
User Repository (SQLite).

Users are never hard-deleted: ``delete`` clears ``is_active`` so that
transactions and reports keep a valid author.  Every read filters on
``is_active = 1``, and the partial unique index on ``email`` only covers
active rows, so a deactivated address can register again.
"""

from __future__ import annotations

import sqlite3
from typing import Union

from family_budget.errors import NotFoundError
from family_budget.models.enums import UserRole
from family_budget.models.user import User
from family_budget.repositories.interfaces import UserRepository, UUIDLike
from family_budget.repositories.sqlite.base import SQLiteRepository
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_email, validate_enum, validate_uuid


class SQLiteUserRepository(SQLiteRepository, UserRepository):
    """Data access layer for User entities in SQLite."""

    TABLE = "users"
    ENTITY = "user"

    @staticmethod
    def _to_model(row: sqlite3.Row) -> User:
        return User.model_validate(dict(row))

    def create(self, user: User) -> User:
        record = self._validated_user(user)
        now = utc_now()
        record = record.model_copy(
            update={"is_active": True, "created_at": now, "updated_at": now}
        )
        self._write(
            f"""
            INSERT INTO {self.TABLE} (
                id, email, password_hash, first_name, last_name, role,
                family_id, is_active, last_login, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id, record.email, record.password_hash,
                record.first_name, record.last_name, record.role,
                record.family_id, record.is_active, record.last_login,
                record.created_at, record.updated_at,
            ),
            detail=f"email {record.email}",
        )
        self._logger.info("User created: %s", record.id)
        return record

    def get_by_id(self, user_id: UUIDLike) -> User:
        uid = validate_uuid(user_id, "user_id")
        row = self._fetch_one(
            f"SELECT * FROM {self.TABLE} WHERE id = ? AND is_active = 1", (uid,)
        )
        if row is None:
            raise NotFoundError(self.ENTITY, uid)
        return self._to_model(row)

    def get_by_email(self, email: str) -> User:
        normalized_email = validate_email(email)
        row = self._fetch_one(
            f"SELECT * FROM {self.TABLE} WHERE email = ? AND is_active = 1",
            (normalized_email,),
        )
        if row is None:
            raise NotFoundError(self.ENTITY, normalized_email)
        return self._to_model(row)

    def get_by_family_id(self, family_id: UUIDLike) -> list[User]:
        fid = validate_uuid(family_id, "family_id")
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} WHERE family_id = ? AND is_active = 1 "
            "ORDER BY created_at ASC",
            (fid,),
        )
        return [self._to_model(row) for row in rows]

    def get_by_role(self, family_id: UUIDLike, role: Union[UserRole, str]) -> list[User]:
        fid = validate_uuid(family_id, "family_id")
        valid_role = validate_enum(role, UserRole, "role")
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} "
            "WHERE family_id = ? AND role = ? AND is_active = 1 ORDER BY created_at ASC",
            (fid, valid_role),
        )
        return [self._to_model(row) for row in rows]

    def update(self, user: User) -> User:
        record = self._validated_user(user)
        record = record.model_copy(update={"updated_at": utc_now()})
        affected = self._write(
            f"""
            UPDATE {self.TABLE}
            SET email = ?, password_hash = ?, first_name = ?, last_name = ?,
                role = ?, updated_at = ?
            WHERE id = ? AND is_active = 1
            """,
            (
                record.email, record.password_hash, record.first_name,
                record.last_name, record.role, record.updated_at, record.id,
            ),
            detail=f"email {record.email}",
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, record.id)
        return self.get_by_id(record.id)

    def delete(self, user_id: UUIDLike, family_id: UUIDLike) -> None:
        uid = validate_uuid(user_id, "user_id")
        fid = validate_uuid(family_id, "family_id")
        affected = self._write(
            f"UPDATE {self.TABLE} SET is_active = 0, updated_at = ? "
            "WHERE id = ? AND family_id = ? AND is_active = 1",
            (utc_now(), uid, fid),
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, uid)
        self._logger.info("User deactivated: %s", uid)

    def update_last_login(self, user_id: UUIDLike) -> None:
        uid = validate_uuid(user_id, "user_id")
        now = utc_now()
        affected = self._write(
            f"UPDATE {self.TABLE} SET last_login = ?, updated_at = ? "
            "WHERE id = ? AND is_active = 1",
            (now, now, uid),
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, uid)

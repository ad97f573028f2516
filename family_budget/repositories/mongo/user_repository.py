"""
User Repository (MongoDB).

The ``idx_users_email_active`` partial unique index only covers
documents with ``is_active: true``, so a deactivated address can be
registered again.
"""

from __future__ import annotations

from typing import Union

from pymongo import ASCENDING

from family_budget.errors import NotFoundError
from family_budget.models.enums import UserRole
from family_budget.models.user import User
from family_budget.repositories.interfaces import UserRepository, UUIDLike
from family_budget.repositories.mongo.base import MongoRepository, from_document
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_email, validate_enum, validate_uuid


class MongoUserRepository(MongoRepository, UserRepository):
    """Data access layer for User documents in MongoDB."""

    TABLE = "users"
    ENTITY = "user"

    def create(self, user: User) -> User:
        record = self._validated_user(user)
        now = utc_now()
        record = record.model_copy(
            update={"is_active": True, "created_at": now, "updated_at": now}
        )
        self._insert(record, detail=f"email {record.email}")
        self._logger.info("User created: %s", record.id)
        return record

    def get_by_id(self, user_id: UUIDLike) -> User:
        uid = validate_uuid(user_id, "user_id")
        document = self.collection.find_one({"_id": str(uid), "is_active": True})
        if document is None:
            raise NotFoundError(self.ENTITY, uid)
        return from_document(User, document)

    def get_by_email(self, email: str) -> User:
        normalized_email = validate_email(email)
        document = self.collection.find_one({"email": normalized_email, "is_active": True})
        if document is None:
            raise NotFoundError(self.ENTITY, normalized_email)
        return from_document(User, document)

    def get_by_family_id(self, family_id: UUIDLike) -> list[User]:
        fid = validate_uuid(family_id, "family_id")
        cursor = self.collection.find(
            {"family_id": str(fid), "is_active": True}
        ).sort("created_at", ASCENDING)
        return [from_document(User, document) for document in cursor]

    def get_by_role(self, family_id: UUIDLike, role: Union[UserRole, str]) -> list[User]:
        fid = validate_uuid(family_id, "family_id")
        valid_role = validate_enum(role, UserRole, "role")
        cursor = self.collection.find(
            {"family_id": str(fid), "role": valid_role.value, "is_active": True}
        ).sort("created_at", ASCENDING)
        return [from_document(User, document) for document in cursor]

    def update(self, user: User) -> User:
        record = self._validated_user(user)
        document = self._find_and_set(
            {"_id": str(record.id), "is_active": True},
            {
                "email": record.email,
                "password_hash": record.password_hash,
                "first_name": record.first_name,
                "last_name": record.last_name,
                "role": record.role,
                "updated_at": utc_now(),
            },
            detail=f"email {record.email}",
        )
        if document is None:
            raise NotFoundError(self.ENTITY, record.id)
        return from_document(User, document)

    def delete(self, user_id: UUIDLike, family_id: UUIDLike) -> None:
        uid = validate_uuid(user_id, "user_id")
        fid = validate_uuid(family_id, "family_id")
        result = self.collection.update_one(
            {"_id": str(uid), "family_id": str(fid), "is_active": True},
            {"$set": {"is_active": False, "updated_at": utc_now()}},
        )
        if result.matched_count == 0:
            raise NotFoundError(self.ENTITY, uid)
        self._logger.info("User deactivated: %s", uid)

    def update_last_login(self, user_id: UUIDLike) -> None:
        uid = validate_uuid(user_id, "user_id")
        now = utc_now()
        result = self.collection.update_one(
            {"_id": str(uid), "is_active": True},
            {"$set": {"last_login": now, "updated_at": now}},
        )
        if result.matched_count == 0:
            raise NotFoundError(self.ENTITY, uid)

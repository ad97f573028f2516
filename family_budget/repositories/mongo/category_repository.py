"""
Category Repository (MongoDB).
"""

from __future__ import annotations

import uuid
from typing import Optional, Union

from pymongo import ASCENDING

from family_budget.errors import ConflictError, NotFoundError
from family_budget.models.category import Category
from family_budget.models.enums import CategoryType
from family_budget.repositories.interfaces import CategoryRepository, UUIDLike
from family_budget.repositories.mongo.base import MongoRepository, from_document
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_enum, validate_uuid


class MongoCategoryRepository(MongoRepository, CategoryRepository):
    """Data access layer for Category documents in MongoDB."""

    TABLE = "categories"
    ENTITY = "category"

    def create(self, category: Category) -> Category:
        record = self._validated_category(category)
        self._check_parent(record)
        now = utc_now()
        record = record.model_copy(
            update={"is_active": True, "created_at": now, "updated_at": now}
        )
        self._insert(record, detail=f"name {record.name!r} ({record.type})")
        self._logger.info("Category created: %s", record.id)
        return record

    def get_by_id(self, category_id: UUIDLike) -> Category:
        cid = validate_uuid(category_id, "category_id")
        document = self.collection.find_one({"_id": str(cid), "is_active": True})
        if document is None:
            raise NotFoundError(self.ENTITY, cid)
        return from_document(Category, document)

    def _find_any(self, category_id: uuid.UUID) -> Optional[Category]:
        document = self.collection.find_one({"_id": str(category_id)})
        return from_document(Category, document) if document is not None else None

    def get_by_family_id(self, family_id: UUIDLike) -> list[Category]:
        fid = validate_uuid(family_id, "family_id")
        cursor = self.collection.find(
            {"family_id": str(fid), "is_active": True}
        ).sort([("type", ASCENDING), ("name", ASCENDING)])
        return [from_document(Category, document) for document in cursor]

    def get_by_type(
        self, family_id: UUIDLike, category_type: Union[CategoryType, str]
    ) -> list[Category]:
        fid = validate_uuid(family_id, "family_id")
        valid_type = validate_enum(category_type, CategoryType, "type")
        cursor = self.collection.find(
            {"family_id": str(fid), "type": valid_type.value, "is_active": True}
        ).sort("name", ASCENDING)
        return [from_document(Category, document) for document in cursor]

    def get_children(self, parent_id: UUIDLike) -> list[Category]:
        pid = validate_uuid(parent_id, "parent_id")
        cursor = self.collection.find(
            {"parent_id": str(pid), "is_active": True}
        ).sort("name", ASCENDING)
        return [from_document(Category, document) for document in cursor]

    def update(self, category: Category) -> Category:
        record = self._validated_category(category)
        self._check_parent(record)
        document = self._find_and_set(
            {"_id": str(record.id), "family_id": str(record.family_id), "is_active": True},
            {
                "name": record.name,
                "description": record.description,
                "color": record.color,
                "icon": record.icon,
                "parent_id": record.parent_id,
                "updated_at": utc_now(),
            },
            detail=f"name {record.name!r} ({record.type})",
        )
        if document is None:
            raise NotFoundError(self.ENTITY, record.id)
        return from_document(Category, document)

    def delete(self, category_id: UUIDLike, family_id: UUIDLike) -> None:
        cid = validate_uuid(category_id, "category_id")
        fid = validate_uuid(family_id, "family_id")
        with self._db.write_lock:
            children = self.collection.count_documents(
                {"parent_id": str(cid), "is_active": True}
            )
            if children:
                raise ConflictError(
                    self.ENTITY,
                    f"{children} active subcategories",
                    message=f"category {cid} still has active subcategories",
                )
            result = self.collection.update_one(
                {"_id": str(cid), "family_id": str(fid), "is_active": True},
                {"$set": {"is_active": False, "updated_at": utc_now()}},
            )
        if result.matched_count == 0:
            raise NotFoundError(self.ENTITY, cid)
        self._logger.info("Category deactivated: %s", cid)

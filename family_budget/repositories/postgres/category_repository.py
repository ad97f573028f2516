"""
Category Repository (PostgreSQL).
"""

from __future__ import annotations

import uuid
from typing import Optional, Union

from family_budget.errors import ConflictError, NotFoundError
from family_budget.models.category import Category
from family_budget.models.enums import CategoryType
from family_budget.repositories.interfaces import CategoryRepository, UUIDLike
from family_budget.repositories.postgres.base import PostgresRepository
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_enum, validate_uuid


class PostgresCategoryRepository(PostgresRepository, CategoryRepository):
    """Data access layer for Category entities in PostgreSQL."""

    TABLE = "categories"
    ENTITY = "category"

    def create(self, category: Category) -> Category:
        record = self._validated_category(category)
        self._check_parent(record)
        now = utc_now()
        record = record.model_copy(
            update={"is_active": True, "created_at": now, "updated_at": now}
        )
        response = self._execute(
            self._table().insert(record.model_dump(mode="json")),
            detail=f"name {record.name!r} ({record.type})",
        )
        row = self._first(response)
        self._logger.info("Category created: %s", record.id)
        return Category.model_validate(row) if row else record

    def get_by_id(self, category_id: UUIDLike) -> Category:
        cid = validate_uuid(category_id, "category_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("id", str(cid))
            .eq("is_active", True)
            .maybe_single()
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, cid)
        return Category.model_validate(row)

    def _find_any(self, category_id: uuid.UUID) -> Optional[Category]:
        row = self._first(self._execute(
            self._table().select("*").eq("id", str(category_id)).maybe_single()
        ))
        return Category.model_validate(row) if row is not None else None

    def get_by_family_id(self, family_id: UUIDLike) -> list[Category]:
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("family_id", str(fid))
            .eq("is_active", True)
            .order("type")
            .order("name")
        )
        return [Category.model_validate(row) for row in self._rows(response)]

    def get_by_type(
        self, family_id: UUIDLike, category_type: Union[CategoryType, str]
    ) -> list[Category]:
        fid = validate_uuid(family_id, "family_id")
        valid_type = validate_enum(category_type, CategoryType, "type")
        response = self._execute(
            self._table()
            .select("*")
            .eq("family_id", str(fid))
            .eq("type", str(valid_type))
            .eq("is_active", True)
            .order("name")
        )
        return [Category.model_validate(row) for row in self._rows(response)]

    def get_children(self, parent_id: UUIDLike) -> list[Category]:
        pid = validate_uuid(parent_id, "parent_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("parent_id", str(pid))
            .eq("is_active", True)
            .order("name")
        )
        return [Category.model_validate(row) for row in self._rows(response)]

    def update(self, category: Category) -> Category:
        record = self._validated_category(category)
        self._check_parent(record)
        response = self._execute(
            self._table()
            .update({
                "name": record.name,
                "description": record.description,
                "color": record.color,
                "icon": record.icon,
                "parent_id": str(record.parent_id) if record.parent_id else None,
                "updated_at": utc_now().isoformat(),
            })
            .eq("id", str(record.id))
            .eq("family_id", str(record.family_id))
            .eq("is_active", True),
            detail=f"name {record.name!r} ({record.type})",
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, record.id)
        return Category.model_validate(row)

    def delete(self, category_id: UUIDLike, family_id: UUIDLike) -> None:
        cid = validate_uuid(category_id, "category_id")
        fid = validate_uuid(family_id, "family_id")

        children = self._count(self._execute(
            self._table()
            .select("id", count="exact")
            .eq("parent_id", str(cid))
            .eq("is_active", True)
        ))
        if children:
            raise ConflictError(
                self.ENTITY,
                f"{children} active subcategories",
                message=f"category {cid} still has active subcategories",
            )

        response = self._execute(
            self._table()
            .update({"is_active": False, "updated_at": utc_now().isoformat()})
            .eq("id", str(cid))
            .eq("family_id", str(fid))
            .eq("is_active", True)
        )
        if not self._rows(response):
            raise NotFoundError(self.ENTITY, cid)
        self._logger.info("Category deactivated: %s", cid)

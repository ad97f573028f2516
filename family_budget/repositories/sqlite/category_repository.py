"""
Category Repository (SQLite).
"""

from __future__ import annotations

import sqlite3
import uuid
from typing import Optional, Union

from family_budget.errors import ConflictError, NotFoundError
from family_budget.models.category import Category
from family_budget.models.enums import CategoryType
from family_budget.repositories.interfaces import CategoryRepository, UUIDLike
from family_budget.repositories.sqlite.base import SQLiteRepository
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_enum, validate_uuid


class SQLiteCategoryRepository(SQLiteRepository, CategoryRepository):
    """Data access layer for Category entities in SQLite."""

    TABLE = "categories"
    ENTITY = "category"

    @staticmethod
    def _to_model(row: sqlite3.Row) -> Category:
        return Category.model_validate(dict(row))

    def create(self, category: Category) -> Category:
        record = self._validated_category(category)
        self._check_parent(record)
        now = utc_now()
        record = record.model_copy(
            update={"is_active": True, "created_at": now, "updated_at": now}
        )
        self._write(
            f"""
            INSERT INTO {self.TABLE} (
                id, name, type, description, color, icon, parent_id,
                family_id, is_active, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id, record.name, record.type, record.description,
                record.color, record.icon, record.parent_id, record.family_id,
                record.is_active, record.created_at, record.updated_at,
            ),
            detail=f"name {record.name!r} ({record.type})",
        )
        self._logger.info("Category created: %s", record.id)
        return record

    def get_by_id(self, category_id: UUIDLike) -> Category:
        cid = validate_uuid(category_id, "category_id")
        row = self._fetch_one(
            f"SELECT * FROM {self.TABLE} WHERE id = ? AND is_active = 1", (cid,)
        )
        if row is None:
            raise NotFoundError(self.ENTITY, cid)
        return self._to_model(row)

    def _find_any(self, category_id: uuid.UUID) -> Optional[Category]:
        row = self._fetch_one(f"SELECT * FROM {self.TABLE} WHERE id = ?", (category_id,))
        return self._to_model(row) if row is not None else None

    def get_by_family_id(self, family_id: UUIDLike) -> list[Category]:
        fid = validate_uuid(family_id, "family_id")
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} WHERE family_id = ? AND is_active = 1 "
            "ORDER BY type, name",
            (fid,),
        )
        return [self._to_model(row) for row in rows]

    def get_by_type(
        self, family_id: UUIDLike, category_type: Union[CategoryType, str]
    ) -> list[Category]:
        fid = validate_uuid(family_id, "family_id")
        valid_type = validate_enum(category_type, CategoryType, "type")
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} "
            "WHERE family_id = ? AND type = ? AND is_active = 1 ORDER BY name",
            (fid, valid_type),
        )
        return [self._to_model(row) for row in rows]

    def get_children(self, parent_id: UUIDLike) -> list[Category]:
        pid = validate_uuid(parent_id, "parent_id")
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} WHERE parent_id = ? AND is_active = 1 "
            "ORDER BY name",
            (pid,),
        )
        return [self._to_model(row) for row in rows]

    def update(self, category: Category) -> Category:
        record = self._validated_category(category)
        self._check_parent(record)
        record = record.model_copy(update={"updated_at": utc_now()})
        affected = self._write(
            f"""
            UPDATE {self.TABLE}
            SET name = ?, description = ?, color = ?, icon = ?, parent_id = ?,
                updated_at = ?
            WHERE id = ? AND family_id = ? AND is_active = 1
            """,
            (
                record.name, record.description, record.color, record.icon,
                record.parent_id, record.updated_at, record.id, record.family_id,
            ),
            detail=f"name {record.name!r} ({record.type})",
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, record.id)
        return self.get_by_id(record.id)

    def delete(self, category_id: UUIDLike, family_id: UUIDLike) -> None:
        cid = validate_uuid(category_id, "category_id")
        fid = validate_uuid(family_id, "family_id")

        children = self._scalar(
            f"SELECT COUNT(*) FROM {self.TABLE} WHERE parent_id = ? AND is_active = 1",
            (cid,),
        )
        if children:
            raise ConflictError(
                self.ENTITY,
                f"{int(children)} active subcategories",
                message=f"category {cid} still has active subcategories",
            )

        affected = self._write(
            f"UPDATE {self.TABLE} SET is_active = 0, updated_at = ? "
            "WHERE id = ? AND family_id = ? AND is_active = 1",
            (utc_now(), cid, fid),
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, cid)
        self._logger.info("Category deactivated: %s", cid)

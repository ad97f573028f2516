"""
Family Repository (SQLite).

Deleting a family relies on ``ON DELETE CASCADE`` foreign keys, which
require ``PRAGMA foreign_keys = ON`` (set by ``DatabaseManager``).
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from family_budget.errors import NotFoundError
from family_budget.models.enums import TransactionType
from family_budget.models.family import Family, FamilyStatistics
from family_budget.repositories.interfaces import FamilyRepository, UUIDLike
from family_budget.repositories.sqlite.base import SQLiteRepository
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_uuid


class SQLiteFamilyRepository(SQLiteRepository, FamilyRepository):
    """Data access layer for Family entities in SQLite."""

    TABLE = "families"
    ENTITY = "family"

    @staticmethod
    def _to_model(row: sqlite3.Row) -> Family:
        return Family.model_validate(dict(row))

    def create(self, family: Family) -> Family:
        record = self._validated_family(family)
        now = utc_now()
        record = record.model_copy(update={"created_at": now, "updated_at": now})
        self._write(
            f"INSERT INTO {self.TABLE} (id, name, currency, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (record.id, record.name, record.currency, record.created_at, record.updated_at),
            detail=f"id {record.id}",
        )
        self._logger.info("Family created: %s", record.id)
        return record

    def get_by_id(self, family_id: UUIDLike) -> Family:
        fid = validate_uuid(family_id, "family_id")
        row = self._fetch_one(f"SELECT * FROM {self.TABLE} WHERE id = ?", (fid,))
        if row is None:
            raise NotFoundError(self.ENTITY, fid)
        return self._to_model(row)

    def get_single(self) -> Family:
        """Return the first family ever created.

        Single-family deployments keep exactly one row; ordering by
        ``created_at`` (then ``id``) makes the choice deterministic should
        a second row ever appear.
        """
        row = self._fetch_one(
            f"SELECT * FROM {self.TABLE} ORDER BY created_at ASC, id ASC LIMIT 1"
        )
        if row is None:
            raise NotFoundError(self.ENTITY)
        return self._to_model(row)

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> list[Family]:
        limit, offset = self._page(limit, offset)
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} ORDER BY created_at ASC, id ASC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [self._to_model(row) for row in rows]

    def update(self, family: Family) -> Family:
        record = self._validated_family(family)
        record = record.model_copy(update={"updated_at": utc_now()})
        affected = self._write(
            f"UPDATE {self.TABLE} SET name = ?, currency = ?, updated_at = ? WHERE id = ?",
            (record.name, record.currency, record.updated_at, record.id),
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, record.id)
        return self.get_by_id(record.id)

    def delete(self, family_id: UUIDLike) -> None:
        fid = validate_uuid(family_id, "family_id")
        affected = self._write(f"DELETE FROM {self.TABLE} WHERE id = ?", (fid,))
        if affected == 0:
            raise NotFoundError(self.ENTITY, fid)
        self._logger.info("Family deleted with cascade: %s", fid)

    def get_statistics(self, family_id: UUIDLike) -> FamilyStatistics:
        fid = validate_uuid(family_id, "family_id")
        self.get_by_id(fid)

        row = self._fetch_one(
            """
            SELECT
                (SELECT COUNT(*) FROM users
                  WHERE family_id = ? AND is_active = 1) AS active_users,
                (SELECT COUNT(*) FROM categories
                  WHERE family_id = ? AND is_active = 1) AS active_categories,
                (SELECT COUNT(*) FROM transactions
                  WHERE family_id = ?) AS transaction_count,
                (SELECT COUNT(*) FROM budgets
                  WHERE family_id = ? AND is_active = 1) AS active_budgets,
                (SELECT COALESCE(SUM(amount), 0) FROM transactions
                  WHERE family_id = ? AND type = ?) AS total_income,
                (SELECT COALESCE(SUM(amount), 0) FROM transactions
                  WHERE family_id = ? AND type = ?) AS total_expenses
            """,
            (
                fid, fid, fid, fid,
                fid, TransactionType.INCOME,
                fid, TransactionType.EXPENSE,
            ),
        )
        return FamilyStatistics(family_id=fid, **dict(row))

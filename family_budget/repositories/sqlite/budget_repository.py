"""
Budget Repository (SQLite).

``spent`` is a cached figure: the service layer recomputes it from the
transactions inside the budget's range and writes it back with
:meth:`update_spent_amount`.
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime
from typing import Optional

from family_budget.errors import NotFoundError
from family_budget.models.budget import Budget
from family_budget.repositories.interfaces import BudgetRepository, UUIDLike
from family_budget.repositories.sqlite.base import SQLiteRepository
from family_budget.utils.time_helpers import to_utc, utc_now
from family_budget.utils.validation import validate_uuid


class SQLiteBudgetRepository(SQLiteRepository, BudgetRepository):
    """Data access layer for Budget entities in SQLite."""

    TABLE = "budgets"
    ENTITY = "budget"

    @staticmethod
    def _to_model(row: sqlite3.Row) -> Budget:
        return Budget.model_validate(dict(row))

    def create(self, budget: Budget) -> Budget:
        record = self._validated_budget(budget)
        now = utc_now()
        record = record.model_copy(
            update={"is_active": True, "created_at": now, "updated_at": now}
        )
        self._write(
            f"""
            INSERT INTO {self.TABLE} (
                id, name, amount, spent, period, category_id, start_date,
                end_date, family_id, is_active, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id, record.name, record.amount, record.spent,
                record.period, record.category_id, record.start_date,
                record.end_date, record.family_id, record.is_active,
                record.created_at, record.updated_at,
            ),
            detail=f"name {record.name!r} for the same period",
        )
        self._logger.info("Budget created: %s", record.id)
        return record

    def get_by_id(self, budget_id: UUIDLike) -> Budget:
        bid = validate_uuid(budget_id, "budget_id")
        row = self._fetch_one(
            f"SELECT * FROM {self.TABLE} WHERE id = ? AND is_active = 1", (bid,)
        )
        if row is None:
            raise NotFoundError(self.ENTITY, bid)
        return self._to_model(row)

    def get_by_family_id(self, family_id: UUIDLike) -> list[Budget]:
        fid = validate_uuid(family_id, "family_id")
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} WHERE family_id = ? AND is_active = 1 "
            "ORDER BY start_date DESC, name",
            (fid,),
        )
        return [self._to_model(row) for row in rows]

    def get_active_budgets(
        self, family_id: UUIDLike, at: Optional[datetime] = None
    ) -> list[Budget]:
        fid = validate_uuid(family_id, "family_id")
        moment = to_utc(at) if at else utc_now()
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} "
            "WHERE family_id = ? AND is_active = 1 AND start_date <= ? AND end_date >= ? "
            "ORDER BY start_date DESC, name",
            (fid, moment, moment),
        )
        return [self._to_model(row) for row in rows]

    def update(self, budget: Budget) -> Budget:
        record = self._validated_budget(budget)
        record = record.model_copy(update={"updated_at": utc_now()})
        affected = self._write(
            f"""
            UPDATE {self.TABLE}
            SET name = ?, amount = ?, spent = ?, period = ?, category_id = ?,
                start_date = ?, end_date = ?, updated_at = ?
            WHERE id = ? AND family_id = ? AND is_active = 1
            """,
            (
                record.name, record.amount, record.spent, record.period,
                record.category_id, record.start_date, record.end_date,
                record.updated_at, record.id, record.family_id,
            ),
            detail=f"name {record.name!r} for the same period",
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, record.id)
        return self.get_by_id(record.id)

    def delete(self, budget_id: UUIDLike, family_id: UUIDLike) -> None:
        bid = validate_uuid(budget_id, "budget_id")
        fid = validate_uuid(family_id, "family_id")
        affected = self._write(
            f"UPDATE {self.TABLE} SET is_active = 0, updated_at = ? "
            "WHERE id = ? AND family_id = ? AND is_active = 1",
            (utc_now(), bid, fid),
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, bid)
        self._logger.info("Budget deactivated: %s", bid)

    def update_spent_amount(self, budget_id: UUIDLike, spent: float) -> None:
        bid = validate_uuid(budget_id, "budget_id")
        valid_spent = self._validated_spent(spent)
        affected = self._write(
            f"UPDATE {self.TABLE} SET spent = ?, updated_at = ? "
            "WHERE id = ? AND is_active = 1",
            (valid_spent, utc_now(), bid),
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, bid)

    def find_affected_by_transaction(
        self, family_id: UUIDLike, category_id: Optional[UUIDLike], date: datetime
    ) -> list[uuid.UUID]:
        fid = validate_uuid(family_id, "family_id")
        moment = to_utc(date)
        if category_id is None:
            rows = self._fetch_all(
                f"SELECT id FROM {self.TABLE} "
                "WHERE family_id = ? AND is_active = 1 AND category_id IS NULL "
                "AND start_date <= ? AND end_date >= ?",
                (fid, moment, moment),
            )
        else:
            cid = validate_uuid(category_id, "category_id")
            rows = self._fetch_all(
                f"SELECT id FROM {self.TABLE} "
                "WHERE family_id = ? AND is_active = 1 "
                "AND (category_id IS NULL OR category_id = ?) "
                "AND start_date <= ? AND end_date >= ?",
                (fid, cid, moment, moment),
            )
        return [uuid.UUID(row["id"]) for row in rows]

"""
Transaction Repository (SQLite).

Tags are stored as a JSON array in a TEXT column and matched with
``json_each``.  Range totals use ``BETWEEN`` on the fixed-width timestamp
text, which is inclusive at both ends.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import Optional, Union

from family_budget.errors import NotFoundError
from family_budget.models.enums import TransactionType
from family_budget.models.transaction import (
    Transaction,
    TransactionFilter,
    TransactionSummary,
)
from family_budget.repositories.interfaces import TransactionRepository, UUIDLike
from family_budget.repositories.sqlite.base import SQLiteRepository
from family_budget.utils.time_helpers import to_utc, utc_now
from family_budget.utils.validation import (
    validate_date_range,
    validate_enum,
    validate_uuid,
)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteTransactionRepository(SQLiteRepository, TransactionRepository):
    """Data access layer for Transaction entities in SQLite."""

    TABLE = "transactions"
    ENTITY = "transaction"

    @staticmethod
    def _to_model(row: sqlite3.Row) -> Transaction:
        data = dict(row)
        data["tags"] = json.loads(data.get("tags") or "[]")
        return Transaction.model_validate(data)

    def create(self, transaction: Transaction) -> Transaction:
        record = self._validated_transaction(transaction)
        now = utc_now()
        record = record.model_copy(update={"created_at": now, "updated_at": now})
        self._write(
            f"""
            INSERT INTO {self.TABLE} (
                id, amount, type, description, category_id, user_id,
                family_id, date, tags, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id, record.amount, record.type, record.description,
                record.category_id, record.user_id, record.family_id,
                record.date, json.dumps(record.tags),
                record.created_at, record.updated_at,
            ),
            detail=f"id {record.id}",
        )
        self._logger.info("Transaction created: %s", record.id)
        return record

    def get_by_id(self, transaction_id: UUIDLike) -> Transaction:
        tid = validate_uuid(transaction_id, "transaction_id")
        row = self._fetch_one(f"SELECT * FROM {self.TABLE} WHERE id = ?", (tid,))
        if row is None:
            raise NotFoundError(self.ENTITY, tid)
        return self._to_model(row)

    def get_by_filter(self, criteria: TransactionFilter) -> list[Transaction]:
        valid = self._validated_filter(criteria)
        limit, offset = self._page(valid.limit, valid.offset)

        clauses: list[str] = ["family_id = ?"]
        params: list[object] = [valid.family_id]

        if valid.user_id is not None:
            clauses.append("user_id = ?")
            params.append(valid.user_id)
        if valid.category_id is not None:
            clauses.append("category_id = ?")
            params.append(valid.category_id)
        if valid.type is not None:
            clauses.append("type = ?")
            params.append(valid.type)
        if valid.date_from is not None:
            clauses.append("date >= ?")
            params.append(valid.date_from)
        if valid.date_to is not None:
            clauses.append("date <= ?")
            params.append(valid.date_to)
        if valid.amount_from is not None:
            clauses.append("amount >= ?")
            params.append(valid.amount_from)
        if valid.amount_to is not None:
            clauses.append("amount <= ?")
            params.append(valid.amount_to)
        if valid.description:
            clauses.append("description LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(valid.description)}%")
        if valid.tags:
            placeholders = ", ".join("?" for _ in valid.tags)
            clauses.append(
                f"EXISTS (SELECT 1 FROM json_each({self.TABLE}.tags) "
                f"WHERE json_each.value IN ({placeholders}))"
            )
            params.extend(valid.tags)

        sql = (
            f"SELECT * FROM {self.TABLE} WHERE {' AND '.join(clauses)} "
            "ORDER BY date DESC, created_at DESC, id DESC LIMIT ? OFFSET ?"
        )
        params.extend([limit, offset])
        return [self._to_model(row) for row in self._fetch_all(sql, params)]

    def get_by_family_id(
        self, family_id: UUIDLike, limit: Optional[int] = None, offset: int = 0
    ) -> list[Transaction]:
        fid = validate_uuid(family_id, "family_id")
        limit, offset = self._page(limit, offset)
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} WHERE family_id = ? "
            "ORDER BY date DESC, created_at DESC, id DESC LIMIT ? OFFSET ?",
            (fid, limit, offset),
        )
        return [self._to_model(row) for row in rows]

    def update(self, transaction: Transaction) -> Transaction:
        record = self._validated_transaction(transaction)
        record = record.model_copy(update={"updated_at": utc_now()})
        affected = self._write(
            f"""
            UPDATE {self.TABLE}
            SET amount = ?, type = ?, description = ?, category_id = ?,
                user_id = ?, date = ?, tags = ?, updated_at = ?
            WHERE id = ? AND family_id = ?
            """,
            (
                record.amount, record.type, record.description,
                record.category_id, record.user_id, record.date,
                json.dumps(record.tags), record.updated_at,
                record.id, record.family_id,
            ),
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, record.id)
        return self.get_by_id(record.id)

    def delete(self, transaction_id: UUIDLike, family_id: UUIDLike) -> None:
        tid = validate_uuid(transaction_id, "transaction_id")
        fid = validate_uuid(family_id, "family_id")
        affected = self._write(
            f"DELETE FROM {self.TABLE} WHERE id = ? AND family_id = ?", (tid, fid)
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, tid)

    def get_total_by_category(
        self, category_id: UUIDLike, transaction_type: Union[TransactionType, str]
    ) -> float:
        cid = validate_uuid(category_id, "category_id")
        valid_type = validate_enum(transaction_type, TransactionType, "type")
        return float(self._scalar(
            f"SELECT COALESCE(SUM(amount), 0) FROM {self.TABLE} "
            "WHERE category_id = ? AND type = ?",
            (cid, valid_type),
        ))

    def get_total_by_family_and_date_range(
        self,
        family_id: UUIDLike,
        start: datetime,
        end: datetime,
        transaction_type: Union[TransactionType, str],
    ) -> float:
        fid = validate_uuid(family_id, "family_id")
        start, end = validate_date_range(to_utc(start), to_utc(end), allow_equal=True)
        valid_type = validate_enum(transaction_type, TransactionType, "type")
        return float(self._scalar(
            f"SELECT COALESCE(SUM(amount), 0) FROM {self.TABLE} "
            "WHERE family_id = ? AND type = ? AND date BETWEEN ? AND ?",
            (fid, valid_type, start, end),
        ))

    def get_total_by_category_and_date_range(
        self,
        category_id: UUIDLike,
        start: datetime,
        end: datetime,
        transaction_type: Union[TransactionType, str],
    ) -> float:
        cid = validate_uuid(category_id, "category_id")
        start, end = validate_date_range(to_utc(start), to_utc(end), allow_equal=True)
        valid_type = validate_enum(transaction_type, TransactionType, "type")
        return float(self._scalar(
            f"SELECT COALESCE(SUM(amount), 0) FROM {self.TABLE} "
            "WHERE category_id = ? AND type = ? AND date BETWEEN ? AND ?",
            (cid, valid_type, start, end),
        ))

    def get_summary(
        self, family_id: UUIDLike, start: datetime, end: datetime
    ) -> TransactionSummary:
        fid = validate_uuid(family_id, "family_id")
        start, end = validate_date_range(to_utc(start), to_utc(end), allow_equal=True)
        row = self._fetch_one(
            f"""
            SELECT
                COUNT(*) AS total_count,
                COALESCE(SUM(CASE WHEN type = 'income' THEN 1 ELSE 0 END), 0) AS income_count,
                COALESCE(SUM(CASE WHEN type = 'expense' THEN 1 ELSE 0 END), 0) AS expense_count,
                COALESCE(SUM(CASE WHEN type = 'income' THEN amount ELSE 0 END), 0) AS total_income,
                COALESCE(SUM(CASE WHEN type = 'expense' THEN amount ELSE 0 END), 0) AS total_expenses
            FROM {self.TABLE}
            WHERE family_id = ? AND date BETWEEN ? AND ?
            """,
            (fid, start, end),
        )
        return TransactionSummary.model_validate(dict(row))

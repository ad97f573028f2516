"""
Transaction Repository (PostgreSQL).

``tags`` is a ``text[]`` column; a filter on tags matches transactions
carrying any of them (``&&`` overlap).  Totals and the summary are
aggregated on the server by the ``transaction_totals`` function.
"""

from __future__ import annotations

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
from family_budget.repositories.postgres.base import PostgresRepository, pg_timestamp
from family_budget.utils.time_helpers import to_utc, utc_now
from family_budget.utils.validation import (
    sanitize_postgrest_value,
    validate_date_range,
    validate_enum,
    validate_uuid,
)


class PostgresTransactionRepository(PostgresRepository, TransactionRepository):
    """Data access layer for Transaction entities in PostgreSQL."""

    TABLE = "transactions"
    ENTITY = "transaction"

    def create(self, transaction: Transaction) -> Transaction:
        record = self._validated_transaction(transaction)
        now = utc_now()
        record = record.model_copy(update={"created_at": now, "updated_at": now})
        response = self._execute(
            self._table().insert(record.model_dump(mode="json")),
            detail=f"id {record.id}",
        )
        row = self._first(response)
        self._logger.info("Transaction created: %s", record.id)
        return Transaction.model_validate(row) if row else record

    def get_by_id(self, transaction_id: UUIDLike) -> Transaction:
        tid = validate_uuid(transaction_id, "transaction_id")
        response = self._execute(
            self._table().select("*").eq("id", str(tid)).maybe_single()
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, tid)
        return Transaction.model_validate(row)

    def get_by_filter(self, criteria: TransactionFilter) -> list[Transaction]:
        valid = self._validated_filter(criteria)
        limit, offset = self._page(valid.limit, valid.offset)

        query = self._table().select("*").eq("family_id", str(valid.family_id))
        if valid.user_id is not None:
            query = query.eq("user_id", str(valid.user_id))
        if valid.category_id is not None:
            query = query.eq("category_id", str(valid.category_id))
        if valid.type is not None:
            query = query.eq("type", str(valid.type))
        if valid.date_from is not None:
            query = query.gte("date", pg_timestamp(valid.date_from))
        if valid.date_to is not None:
            query = query.lte("date", pg_timestamp(valid.date_to))
        if valid.amount_from is not None:
            query = query.gte("amount", valid.amount_from)
        if valid.amount_to is not None:
            query = query.lte("amount", valid.amount_to)
        search = sanitize_postgrest_value(valid.description or "")
        if search:
            query = query.ilike("description", f"%{search}%")
        if valid.tags:
            query = query.ov("tags", valid.tags)

        response = self._execute(
            query
            .order("date", desc=True)
            .order("created_at", desc=True)
            .order("id", desc=True)
            .range(offset, offset + limit - 1)
        )
        return [Transaction.model_validate(row) for row in self._rows(response)]

    def get_by_family_id(
        self, family_id: UUIDLike, limit: Optional[int] = None, offset: int = 0
    ) -> list[Transaction]:
        fid = validate_uuid(family_id, "family_id")
        limit, offset = self._page(limit, offset)
        response = self._execute(
            self._table()
            .select("*")
            .eq("family_id", str(fid))
            .order("date", desc=True)
            .order("created_at", desc=True)
            .order("id", desc=True)
            .range(offset, offset + limit - 1)
        )
        return [Transaction.model_validate(row) for row in self._rows(response)]

    def update(self, transaction: Transaction) -> Transaction:
        record = self._validated_transaction(transaction)
        response = self._execute(
            self._table()
            .update({
                "amount": record.amount,
                "type": str(record.type),
                "description": record.description,
                "category_id": str(record.category_id),
                "user_id": str(record.user_id),
                "date": pg_timestamp(record.date),
                "tags": record.tags,
                "updated_at": utc_now().isoformat(),
            })
            .eq("id", str(record.id))
            .eq("family_id", str(record.family_id))
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, record.id)
        return Transaction.model_validate(row)

    def delete(self, transaction_id: UUIDLike, family_id: UUIDLike) -> None:
        tid = validate_uuid(transaction_id, "transaction_id")
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table().delete().eq("id", str(tid)).eq("family_id", str(fid))
        )
        if not self._rows(response):
            raise NotFoundError(self.ENTITY, tid)

    def get_total_by_category(
        self, category_id: UUIDLike, transaction_type: Union[TransactionType, str]
    ) -> float:
        cid = validate_uuid(category_id, "category_id")
        valid_type = validate_enum(transaction_type, TransactionType, "type")
        return self._total(str(valid_type), category_id=str(cid))

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
        return self._total(
            str(valid_type), family_id=str(fid), date_from=start, date_to=end,
        )

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
        return self._total(
            str(valid_type), category_id=str(cid), date_from=start, date_to=end,
        )

    def get_summary(
        self, family_id: UUIDLike, start: datetime, end: datetime
    ) -> TransactionSummary:
        fid = validate_uuid(family_id, "family_id")
        start, end = validate_date_range(to_utc(start), to_utc(end), allow_equal=True)
        totals = self._totals(family_id=str(fid), date_from=start, date_to=end)
        income, income_count = totals.get(TransactionType.INCOME.value, (0.0, 0))
        expenses, expense_count = totals.get(TransactionType.EXPENSE.value, (0.0, 0))
        return TransactionSummary(
            total_count=income_count + expense_count,
            income_count=income_count,
            expense_count=expense_count,
            total_income=income,
            total_expenses=expenses,
        )

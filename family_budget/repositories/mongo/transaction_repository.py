"""
Transaction Repository (MongoDB).

Totals are computed server-side with an aggregation ``$group``.  The
description filter is a case-insensitive regular expression built from
the escaped search text.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional, Union

from pymongo import DESCENDING

from family_budget.errors import NotFoundError
from family_budget.models.enums import TransactionType
from family_budget.models.transaction import (
    Transaction,
    TransactionFilter,
    TransactionSummary,
)
from family_budget.repositories.interfaces import TransactionRepository, UUIDLike
from family_budget.repositories.mongo.base import MongoRepository, from_document
from family_budget.utils.time_helpers import to_utc, utc_now
from family_budget.utils.validation import (
    validate_date_range,
    validate_enum,
    validate_uuid,
)

_NEWEST_FIRST = [("date", DESCENDING), ("created_at", DESCENDING), ("_id", DESCENDING)]


class MongoTransactionRepository(MongoRepository, TransactionRepository):
    """Data access layer for Transaction documents in MongoDB."""

    TABLE = "transactions"
    ENTITY = "transaction"

    def create(self, transaction: Transaction) -> Transaction:
        record = self._validated_transaction(transaction)
        now = utc_now()
        record = record.model_copy(update={"created_at": now, "updated_at": now})
        self._insert(record, detail=f"id {record.id}")
        self._logger.info("Transaction created: %s", record.id)
        return record

    def get_by_id(self, transaction_id: UUIDLike) -> Transaction:
        tid = validate_uuid(transaction_id, "transaction_id")
        document = self.collection.find_one({"_id": str(tid)})
        if document is None:
            raise NotFoundError(self.ENTITY, tid)
        return from_document(Transaction, document)

    def get_by_filter(self, criteria: TransactionFilter) -> list[Transaction]:
        valid = self._validated_filter(criteria)
        limit, offset = self._page(valid.limit, valid.offset)

        query: dict[str, Any] = {"family_id": str(valid.family_id)}
        if valid.user_id is not None:
            query["user_id"] = str(valid.user_id)
        if valid.category_id is not None:
            query["category_id"] = str(valid.category_id)
        if valid.type is not None:
            query["type"] = valid.type.value

        date_range: dict[str, datetime] = {}
        if valid.date_from is not None:
            date_range["$gte"] = valid.date_from
        if valid.date_to is not None:
            date_range["$lte"] = valid.date_to
        if date_range:
            query["date"] = date_range

        amount_range: dict[str, float] = {}
        if valid.amount_from is not None:
            amount_range["$gte"] = valid.amount_from
        if valid.amount_to is not None:
            amount_range["$lte"] = valid.amount_to
        if amount_range:
            query["amount"] = amount_range

        if valid.description:
            query["description"] = {"$regex": re.escape(valid.description), "$options": "i"}
        if valid.tags:
            query["tags"] = {"$in": list(valid.tags)}

        cursor = self.collection.find(query).sort(_NEWEST_FIRST).skip(offset).limit(limit)
        return [from_document(Transaction, document) for document in cursor]

    def get_by_family_id(
        self, family_id: UUIDLike, limit: Optional[int] = None, offset: int = 0
    ) -> list[Transaction]:
        fid = validate_uuid(family_id, "family_id")
        limit, offset = self._page(limit, offset)
        cursor = (
            self.collection.find({"family_id": str(fid)})
            .sort(_NEWEST_FIRST)
            .skip(offset)
            .limit(limit)
        )
        return [from_document(Transaction, document) for document in cursor]

    def update(self, transaction: Transaction) -> Transaction:
        record = self._validated_transaction(transaction)
        document = self._find_and_set(
            {"_id": str(record.id), "family_id": str(record.family_id)},
            {
                "amount": record.amount,
                "type": record.type,
                "description": record.description,
                "category_id": record.category_id,
                "user_id": record.user_id,
                "date": record.date,
                "tags": record.tags,
                "updated_at": utc_now(),
            },
        )
        if document is None:
            raise NotFoundError(self.ENTITY, record.id)
        return from_document(Transaction, document)

    def delete(self, transaction_id: UUIDLike, family_id: UUIDLike) -> None:
        tid = validate_uuid(transaction_id, "transaction_id")
        fid = validate_uuid(family_id, "family_id")
        result = self.collection.delete_one({"_id": str(tid), "family_id": str(fid)})
        if result.deleted_count == 0:
            raise NotFoundError(self.ENTITY, tid)

    def get_total_by_category(
        self, category_id: UUIDLike, transaction_type: Union[TransactionType, str]
    ) -> float:
        cid = validate_uuid(category_id, "category_id")
        valid_type = validate_enum(transaction_type, TransactionType, "type")
        return self._sum({"category_id": str(cid), "type": valid_type.value})

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
        return self._sum({
            "family_id": str(fid),
            "type": valid_type.value,
            "date": {"$gte": start, "$lte": end},
        })

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
        return self._sum({
            "category_id": str(cid),
            "type": valid_type.value,
            "date": {"$gte": start, "$lte": end},
        })

    def get_summary(
        self, family_id: UUIDLike, start: datetime, end: datetime
    ) -> TransactionSummary:
        fid = validate_uuid(family_id, "family_id")
        start, end = validate_date_range(to_utc(start), to_utc(end), allow_equal=True)
        pipeline = [
            {"$match": {"family_id": str(fid), "date": {"$gte": start, "$lte": end}}},
            {"$group": {"_id": "$type", "count": {"$sum": 1}, "total": {"$sum": "$amount"}}},
        ]
        groups = {row["_id"]: row for row in self.collection.aggregate(pipeline)}
        income = groups.get(TransactionType.INCOME.value, {})
        expense = groups.get(TransactionType.EXPENSE.value, {})
        income_count = int(income.get("count", 0))
        expense_count = int(expense.get("count", 0))
        return TransactionSummary(
            total_count=income_count + expense_count,
            income_count=income_count,
            expense_count=expense_count,
            total_income=float(income.get("total", 0.0)),
            total_expenses=float(expense.get("total", 0.0)),
        )

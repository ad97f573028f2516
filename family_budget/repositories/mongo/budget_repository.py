"""
Budget Repository (MongoDB).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING

from family_budget.errors import NotFoundError
from family_budget.models.budget import Budget
from family_budget.repositories.interfaces import BudgetRepository, UUIDLike
from family_budget.repositories.mongo.base import MongoRepository, from_document
from family_budget.utils.time_helpers import to_utc, utc_now
from family_budget.utils.validation import validate_uuid

_LATEST_FIRST = [("start_date", DESCENDING), ("name", ASCENDING)]


class MongoBudgetRepository(MongoRepository, BudgetRepository):
    """Data access layer for Budget documents in MongoDB."""

    TABLE = "budgets"
    ENTITY = "budget"

    def create(self, budget: Budget) -> Budget:
        record = self._validated_budget(budget)
        now = utc_now()
        record = record.model_copy(
            update={"is_active": True, "created_at": now, "updated_at": now}
        )
        self._insert(record, detail=f"name {record.name!r} for the same period")
        self._logger.info("Budget created: %s", record.id)
        return record

    def get_by_id(self, budget_id: UUIDLike) -> Budget:
        bid = validate_uuid(budget_id, "budget_id")
        document = self.collection.find_one({"_id": str(bid), "is_active": True})
        if document is None:
            raise NotFoundError(self.ENTITY, bid)
        return from_document(Budget, document)

    def get_by_family_id(self, family_id: UUIDLike) -> list[Budget]:
        fid = validate_uuid(family_id, "family_id")
        cursor = self.collection.find(
            {"family_id": str(fid), "is_active": True}
        ).sort(_LATEST_FIRST)
        return [from_document(Budget, document) for document in cursor]

    def get_active_budgets(
        self, family_id: UUIDLike, at: Optional[datetime] = None
    ) -> list[Budget]:
        fid = validate_uuid(family_id, "family_id")
        moment = to_utc(at) if at else utc_now()
        cursor = self.collection.find({
            "family_id": str(fid),
            "is_active": True,
            "start_date": {"$lte": moment},
            "end_date": {"$gte": moment},
        }).sort(_LATEST_FIRST)
        return [from_document(Budget, document) for document in cursor]

    def update(self, budget: Budget) -> Budget:
        record = self._validated_budget(budget)
        document = self._find_and_set(
            {"_id": str(record.id), "family_id": str(record.family_id), "is_active": True},
            {
                "name": record.name,
                "amount": record.amount,
                "spent": record.spent,
                "period": record.period,
                "category_id": record.category_id,
                "start_date": record.start_date,
                "end_date": record.end_date,
                "updated_at": utc_now(),
            },
            detail=f"name {record.name!r} for the same period",
        )
        if document is None:
            raise NotFoundError(self.ENTITY, record.id)
        return from_document(Budget, document)

    def delete(self, budget_id: UUIDLike, family_id: UUIDLike) -> None:
        bid = validate_uuid(budget_id, "budget_id")
        fid = validate_uuid(family_id, "family_id")
        result = self.collection.update_one(
            {"_id": str(bid), "family_id": str(fid), "is_active": True},
            {"$set": {"is_active": False, "updated_at": utc_now()}},
        )
        if result.matched_count == 0:
            raise NotFoundError(self.ENTITY, bid)
        self._logger.info("Budget deactivated: %s", bid)

    def update_spent_amount(self, budget_id: UUIDLike, spent: float) -> None:
        bid = validate_uuid(budget_id, "budget_id")
        valid_spent = self._validated_spent(spent)
        result = self.collection.update_one(
            {"_id": str(bid), "is_active": True},
            {"$set": {"spent": valid_spent, "updated_at": utc_now()}},
        )
        if result.matched_count == 0:
            raise NotFoundError(self.ENTITY, bid)

    def find_affected_by_transaction(
        self, family_id: UUIDLike, category_id: Optional[UUIDLike], date: datetime
    ) -> list[uuid.UUID]:
        fid = validate_uuid(family_id, "family_id")
        moment = to_utc(date)
        query: dict[str, Any] = {
            "family_id": str(fid),
            "is_active": True,
            "start_date": {"$lte": moment},
            "end_date": {"$gte": moment},
        }
        if category_id is None:
            query["category_id"] = None
        else:
            cid = validate_uuid(category_id, "category_id")
            query["$or"] = [{"category_id": None}, {"category_id": str(cid)}]
        cursor = self.collection.find(query, {"_id": 1})
        return [uuid.UUID(document["_id"]) for document in cursor]

"""
Family Repository (MongoDB).

MongoDB has no foreign keys, so deleting a family removes the documents
it owns from every other collection explicitly.
"""

from __future__ import annotations

from typing import Optional

from pymongo import ASCENDING

from family_budget.errors import NotFoundError
from family_budget.models.enums import TransactionType
from family_budget.models.family import Family, FamilyStatistics
from family_budget.repositories.interfaces import FamilyRepository, UUIDLike
from family_budget.repositories.mongo.base import MongoRepository, from_document
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_uuid

# Collections whose documents carry a ``family_id``, children first.
_OWNED_COLLECTIONS: tuple[str, ...] = (
    "reports",
    "budgets",
    "transactions",
    "categories",
    "invites",
    "users",
)


class MongoFamilyRepository(MongoRepository, FamilyRepository):
    """Data access layer for Family documents in MongoDB."""

    TABLE = "families"
    ENTITY = "family"

    def create(self, family: Family) -> Family:
        record = self._validated_family(family)
        now = utc_now()
        record = record.model_copy(update={"created_at": now, "updated_at": now})
        self._insert(record, detail=f"id {record.id}")
        self._logger.info("Family created: %s", record.id)
        return record

    def get_by_id(self, family_id: UUIDLike) -> Family:
        fid = validate_uuid(family_id, "family_id")
        document = self.collection.find_one({"_id": str(fid)})
        if document is None:
            raise NotFoundError(self.ENTITY, fid)
        return from_document(Family, document)

    def get_single(self) -> Family:
        """Return the first family ever created (ordered by ``created_at``)."""
        cursor = (
            self.collection.find({})
            .sort([("created_at", ASCENDING), ("_id", ASCENDING)])
            .limit(1)
        )
        for document in cursor:
            return from_document(Family, document)
        raise NotFoundError(self.ENTITY)

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> list[Family]:
        limit, offset = self._page(limit, offset)
        cursor = (
            self.collection.find({})
            .sort([("created_at", ASCENDING), ("_id", ASCENDING)])
            .skip(offset)
            .limit(limit)
        )
        return [from_document(Family, document) for document in cursor]

    def update(self, family: Family) -> Family:
        record = self._validated_family(family)
        document = self._find_and_set(
            {"_id": str(record.id)},
            {"name": record.name, "currency": record.currency, "updated_at": utc_now()},
        )
        if document is None:
            raise NotFoundError(self.ENTITY, record.id)
        return from_document(Family, document)

    def delete(self, family_id: UUIDLike) -> None:
        fid = validate_uuid(family_id, "family_id")
        with self._db.write_lock:
            result = self.collection.delete_one({"_id": str(fid)})
            if result.deleted_count == 0:
                raise NotFoundError(self.ENTITY, fid)
            for name in _OWNED_COLLECTIONS:
                self._db.mongo[name].delete_many({"family_id": str(fid)})
        self._logger.info("Family deleted with cascade: %s", fid)

    def get_statistics(self, family_id: UUIDLike) -> FamilyStatistics:
        fid = validate_uuid(family_id, "family_id")
        self.get_by_id(fid)
        key = str(fid)
        database = self._db.mongo
        active = {"family_id": key, "is_active": True}

        totals = {TransactionType.INCOME.value: 0.0, TransactionType.EXPENSE.value: 0.0}
        pipeline = [
            {"$match": {"family_id": key}},
            {"$group": {"_id": "$type", "total": {"$sum": "$amount"}}},
        ]
        for row in database["transactions"].aggregate(pipeline):
            totals[row["_id"]] = float(row.get("total") or 0.0)

        return FamilyStatistics(
            family_id=fid,
            active_users=database["users"].count_documents(active),
            active_categories=database["categories"].count_documents(active),
            transaction_count=database["transactions"].count_documents({"family_id": key}),
            active_budgets=database["budgets"].count_documents(active),
            total_income=totals[TransactionType.INCOME.value],
            total_expenses=totals[TransactionType.EXPENSE.value],
        )

"""
Shared plumbing for the MongoDB repositories.

Documents use the entity's UUID (as a string) for ``_id``.  Foreign keys
are stored as UUID strings, enums as their string value and datetimes as
native BSON dates (millisecond precision, read back timezone-aware).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional, TypeVar

from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from family_budget.errors import ConflictError
from family_budget.repositories.base_repository import BaseRepository
from family_budget.utils.time_helpers import to_utc_millis

ModelT = TypeVar("ModelT", bound=BaseModel)


def bson_value(value: Any) -> Any:
    """Convert a model value (recursively) into something BSON can store."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_utc_millis(value)
    if isinstance(value, dict):
        return {key: bson_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [bson_value(item) for item in value]
    return value


def to_document(model: BaseModel) -> dict[str, Any]:
    """Serialise *model* for ``insert_one``, moving ``id`` to ``_id``."""
    document = bson_value(model.model_dump())
    document["_id"] = document.pop("id")
    return document


def from_document(model_cls: type[ModelT], document: dict[str, Any]) -> ModelT:
    data = dict(document)
    data["id"] = data.pop("_id")
    return model_cls.model_validate(data)


class MongoRepository(BaseRepository):
    """Base for repositories backed by a MongoDB collection."""

    def _insert(self, model: BaseModel, detail: str = "") -> None:
        """Insert *model*, mapping duplicate-key errors to ``ConflictError``."""
        try:
            self.collection.insert_one(to_document(model))
        except DuplicateKeyError as exc:
            raise ConflictError(self.ENTITY, detail or str(exc)) from exc

    def _find_and_set(
        self, query: dict[str, Any], changes: dict[str, Any], detail: str = ""
    ) -> Optional[dict[str, Any]]:
        """``$set`` *changes* on the first match and return the updated document."""
        try:
            return self.collection.find_one_and_update(
                query,
                {"$set": bson_value(changes)},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise ConflictError(self.ENTITY, detail or str(exc)) from exc

    def _sum(self, match: dict[str, Any], field: str = "amount") -> float:
        """Server-side ``$sum`` of *field* over the documents matching *match*."""
        pipeline = [
            {"$match": match},
            {"$group": {"_id": None, "total": {"$sum": f"${field}"}}},
        ]
        for row in self.collection.aggregate(pipeline):
            return float(row.get("total") or 0.0)
        return 0.0

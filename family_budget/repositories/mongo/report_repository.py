"""
Report Repository (MongoDB).

``ReportData`` is embedded as a sub-document.
"""

from __future__ import annotations

from pymongo import DESCENDING

from family_budget.errors import NotFoundError
from family_budget.models.report import Report
from family_budget.repositories.interfaces import ReportRepository, UUIDLike
from family_budget.repositories.mongo.base import MongoRepository, from_document
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_uuid


class MongoReportRepository(MongoRepository, ReportRepository):
    """Data access layer for Report documents in MongoDB."""

    TABLE = "reports"
    ENTITY = "report"

    def create(self, report: Report) -> Report:
        record = self._validated_report(report)
        record = record.model_copy(update={"generated_at": record.generated_at or utc_now()})
        self._insert(record, detail=f"id {record.id}")
        self._logger.info("Report created: %s", record.id)
        return record

    def get_by_id(self, report_id: UUIDLike) -> Report:
        rid = validate_uuid(report_id, "report_id")
        document = self.collection.find_one({"_id": str(rid)})
        if document is None:
            raise NotFoundError(self.ENTITY, rid)
        return from_document(Report, document)

    def get_by_family_id(self, family_id: UUIDLike) -> list[Report]:
        fid = validate_uuid(family_id, "family_id")
        cursor = self.collection.find({"family_id": str(fid)}).sort("generated_at", DESCENDING)
        return [from_document(Report, document) for document in cursor]

    def get_by_user_id(self, user_id: UUIDLike) -> list[Report]:
        uid = validate_uuid(user_id, "user_id")
        cursor = self.collection.find({"user_id": str(uid)}).sort("generated_at", DESCENDING)
        return [from_document(Report, document) for document in cursor]

    def delete(self, report_id: UUIDLike, family_id: UUIDLike) -> None:
        rid = validate_uuid(report_id, "report_id")
        fid = validate_uuid(family_id, "family_id")
        result = self.collection.delete_one({"_id": str(rid), "family_id": str(fid)})
        if result.deleted_count == 0:
            raise NotFoundError(self.ENTITY, rid)

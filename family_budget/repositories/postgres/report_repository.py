"""
Report Repository (PostgreSQL).

``data`` is a ``jsonb`` column holding the serialised ``ReportData``.
"""

from __future__ import annotations

from family_budget.errors import NotFoundError
from family_budget.models.report import Report
from family_budget.repositories.interfaces import ReportRepository, UUIDLike
from family_budget.repositories.postgres.base import PostgresRepository
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_uuid


class PostgresReportRepository(PostgresRepository, ReportRepository):
    """Data access layer for Report entities in PostgreSQL."""

    TABLE = "reports"
    ENTITY = "report"

    def create(self, report: Report) -> Report:
        record = self._validated_report(report)
        record = record.model_copy(update={"generated_at": record.generated_at or utc_now()})
        response = self._execute(
            self._table().insert(record.model_dump(mode="json")),
            detail=f"id {record.id}",
        )
        row = self._first(response)
        self._logger.info("Report created: %s", record.id)
        return Report.model_validate(row) if row else record

    def get_by_id(self, report_id: UUIDLike) -> Report:
        rid = validate_uuid(report_id, "report_id")
        response = self._execute(
            self._table().select("*").eq("id", str(rid)).maybe_single()
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, rid)
        return Report.model_validate(row)

    def get_by_family_id(self, family_id: UUIDLike) -> list[Report]:
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("family_id", str(fid))
            .order("generated_at", desc=True)
        )
        return [Report.model_validate(row) for row in self._rows(response)]

    def get_by_user_id(self, user_id: UUIDLike) -> list[Report]:
        uid = validate_uuid(user_id, "user_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("user_id", str(uid))
            .order("generated_at", desc=True)
        )
        return [Report.model_validate(row) for row in self._rows(response)]

    def delete(self, report_id: UUIDLike, family_id: UUIDLike) -> None:
        rid = validate_uuid(report_id, "report_id")
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table().delete().eq("id", str(rid)).eq("family_id", str(fid))
        )
        if not self._rows(response):
            raise NotFoundError(self.ENTITY, rid)

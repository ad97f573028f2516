"""
Report Repository (SQLite).

``ReportData`` is stored as JSON text in the ``data`` column.
"""

from __future__ import annotations

import json
import sqlite3

from family_budget.errors import NotFoundError
from family_budget.models.report import Report
from family_budget.repositories.interfaces import ReportRepository, UUIDLike
from family_budget.repositories.sqlite.base import SQLiteRepository
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_uuid


class SQLiteReportRepository(SQLiteRepository, ReportRepository):
    """Data access layer for Report entities in SQLite."""

    TABLE = "reports"
    ENTITY = "report"

    @staticmethod
    def _to_model(row: sqlite3.Row) -> Report:
        data = dict(row)
        data["data"] = json.loads(data.get("data") or "{}")
        return Report.model_validate(data)

    def create(self, report: Report) -> Report:
        record = self._validated_report(report)
        record = record.model_copy(update={"generated_at": record.generated_at or utc_now()})
        self._write(
            f"""
            INSERT INTO {self.TABLE} (
                id, name, type, period, family_id, user_id, start_date,
                end_date, data, generated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id, record.name, record.type, record.period,
                record.family_id, record.user_id, record.start_date,
                record.end_date, record.data.model_dump_json(), record.generated_at,
            ),
            detail=f"id {record.id}",
        )
        self._logger.info("Report created: %s", record.id)
        return record

    def get_by_id(self, report_id: UUIDLike) -> Report:
        rid = validate_uuid(report_id, "report_id")
        row = self._fetch_one(f"SELECT * FROM {self.TABLE} WHERE id = ?", (rid,))
        if row is None:
            raise NotFoundError(self.ENTITY, rid)
        return self._to_model(row)

    def get_by_family_id(self, family_id: UUIDLike) -> list[Report]:
        fid = validate_uuid(family_id, "family_id")
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} WHERE family_id = ? ORDER BY generated_at DESC",
            (fid,),
        )
        return [self._to_model(row) for row in rows]

    def get_by_user_id(self, user_id: UUIDLike) -> list[Report]:
        uid = validate_uuid(user_id, "user_id")
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} WHERE user_id = ? ORDER BY generated_at DESC",
            (uid,),
        )
        return [self._to_model(row) for row in rows]

    def delete(self, report_id: UUIDLike, family_id: UUIDLike) -> None:
        rid = validate_uuid(report_id, "report_id")
        fid = validate_uuid(family_id, "family_id")
        affected = self._write(
            f"DELETE FROM {self.TABLE} WHERE id = ? AND family_id = ?", (rid, fid)
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, rid)

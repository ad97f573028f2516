"""
Shared plumbing for the PostgreSQL repositories.

All queries go through the Supabase client's PostgREST builder
(``.table(T).select(...).eq(...).execute()``), which sends filter values
as URL parameters rather than interpolated SQL.  Rows come back as JSON,
so models are serialised with ``model_dump(mode="json")`` on the way in
and re-validated by pydantic on the way out.  Sums and counts over
transactions come from the ``transaction_totals`` SQL function via
``supabase.rpc`` so they are never cut short by the response row cap.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from postgrest.exceptions import APIError

from family_budget.errors import ConflictError
from family_budget.repositories.base_repository import BaseRepository
from family_budget.utils.time_helpers import to_utc

JsonRow = dict[str, object]

# SQLSTATE for unique_violation.
UNIQUE_VIOLATION = "23505"

# Defined in migrations/postgresql/002_transaction_totals.up.sql.
TOTALS_FUNCTION = "transaction_totals"


def pg_timestamp(value: datetime) -> str:
    """ISO-8601 text PostgREST accepts for ``timestamptz`` filters."""
    return to_utc(value).isoformat()


class PostgresRepository(BaseRepository):
    """Base for repositories backed by PostgreSQL through Supabase."""

    def _table(self):
        return self.supabase.table(self.TABLE)

    def _execute(self, query, detail: str = ""):
        """Run a PostgREST request, mapping unique violations to ``ConflictError``."""
        try:
            return query.execute()
        except APIError as exc:
            if getattr(exc, "code", None) == UNIQUE_VIOLATION:
                raise ConflictError(self.ENTITY, detail or str(exc.message)) from exc
            raise

    @staticmethod
    def _rows(response) -> list[JsonRow]:
        if response is None or not response.data:
            return []
        data = response.data
        return data if isinstance(data, list) else [data]

    @classmethod
    def _first(cls, response) -> Optional[JsonRow]:
        """First row of *response*, tolerating ``maybe_single`` returning ``None``."""
        rows = cls._rows(response)
        return rows[0] if rows else None

    @staticmethod
    def _count(response) -> int:
        return int(response.count or 0) if response is not None else 0

    def _totals(
        self,
        family_id: Optional[str] = None,
        category_id: Optional[str] = None,
        transaction_type: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> dict[str, tuple[float, int]]:
        """``{type: (sum, count)}`` aggregated by the ``transaction_totals`` function.

        Every parameter is sent, ``None`` included, so PostgREST resolves
        the one function signature.
        """
        params = {
            "p_family_id": family_id,
            "p_category_id": category_id,
            "p_type": transaction_type,
            "p_date_from": pg_timestamp(date_from) if date_from else None,
            "p_date_to": pg_timestamp(date_to) if date_to else None,
        }
        response = self._execute(self.supabase.rpc(TOTALS_FUNCTION, params))
        totals: dict[str, tuple[float, int]] = {}
        for row in self._rows(response):
            amount: Union[int, float, str, None] = row.get("total_amount")  # type: ignore[assignment]
            count: Union[int, str, None] = row.get("row_count")  # type: ignore[assignment]
            totals[str(row.get("transaction_type"))] = (
                float(amount or 0), int(count or 0),
            )
        return totals

    def _total(
        self, transaction_type: str, **filters: Union[str, datetime, None]
    ) -> float:
        """Sum of ``amount`` for one transaction type."""
        totals = self._totals(transaction_type=transaction_type, **filters)
        return totals.get(transaction_type, (0.0, 0))[0]

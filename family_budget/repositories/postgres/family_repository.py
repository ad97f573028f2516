"""
Family Repository (PostgreSQL).

``ON DELETE CASCADE`` foreign keys remove everything a family owns.
"""

from __future__ import annotations

from typing import Optional

from family_budget.errors import NotFoundError
from family_budget.models.enums import TransactionType
from family_budget.models.family import Family, FamilyStatistics
from family_budget.repositories.interfaces import FamilyRepository, UUIDLike
from family_budget.repositories.postgres.base import PostgresRepository
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_uuid


class PostgresFamilyRepository(PostgresRepository, FamilyRepository):
    """Data access layer for Family entities in PostgreSQL."""

    TABLE = "families"
    ENTITY = "family"

    def create(self, family: Family) -> Family:
        record = self._validated_family(family)
        now = utc_now()
        record = record.model_copy(update={"created_at": now, "updated_at": now})
        response = self._execute(
            self._table().insert(record.model_dump(mode="json")),
            detail=f"id {record.id}",
        )
        row = self._first(response)
        self._logger.info("Family created: %s", record.id)
        return Family.model_validate(row) if row else record

    def get_by_id(self, family_id: UUIDLike) -> Family:
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table().select("*").eq("id", str(fid)).maybe_single()
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, fid)
        return Family.model_validate(row)

    def get_single(self) -> Family:
        """Return the first family ever created (ordered by ``created_at``)."""
        response = self._execute(
            self._table().select("*").order("created_at").order("id").limit(1)
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY)
        return Family.model_validate(row)

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> list[Family]:
        limit, offset = self._page(limit, offset)
        response = self._execute(
            self._table()
            .select("*")
            .order("created_at")
            .order("id")
            .range(offset, offset + limit - 1)
        )
        return [Family.model_validate(row) for row in self._rows(response)]

    def update(self, family: Family) -> Family:
        record = self._validated_family(family)
        now = utc_now()
        response = self._execute(
            self._table()
            .update({
                "name": record.name,
                "currency": record.currency,
                "updated_at": now.isoformat(),
            })
            .eq("id", str(record.id))
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, record.id)
        return Family.model_validate(row)

    def delete(self, family_id: UUIDLike) -> None:
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(self._table().delete().eq("id", str(fid)))
        if not self._rows(response):
            raise NotFoundError(self.ENTITY, fid)
        self._logger.info("Family deleted with cascade: %s", fid)

    def _count_rows(self, table: str, family_id: str, active_only: bool) -> int:
        query = (
            self.supabase.table(table)
            .select("id", count="exact")
            .eq("family_id", family_id)
        )
        if active_only:
            query = query.eq("is_active", True)
        return self._count(self._execute(query))

    def get_statistics(self, family_id: UUIDLike) -> FamilyStatistics:
        fid = validate_uuid(family_id, "family_id")
        self.get_by_id(fid)
        key = str(fid)
        totals = self._totals(family_id=key)
        return FamilyStatistics(
            family_id=fid,
            active_users=self._count_rows("users", key, active_only=True),
            active_categories=self._count_rows("categories", key, active_only=True),
            transaction_count=sum(count for _, count in totals.values()),
            active_budgets=self._count_rows("budgets", key, active_only=True),
            total_income=totals.get(TransactionType.INCOME.value, (0.0, 0))[0],
            total_expenses=totals.get(TransactionType.EXPENSE.value, (0.0, 0))[0],
        )

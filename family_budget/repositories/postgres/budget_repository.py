"""
Budget Repository (PostgreSQL).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from family_budget.errors import NotFoundError
from family_budget.models.budget import Budget
from family_budget.repositories.interfaces import BudgetRepository, UUIDLike
from family_budget.repositories.postgres.base import PostgresRepository, pg_timestamp
from family_budget.utils.time_helpers import to_utc, utc_now
from family_budget.utils.validation import validate_uuid


class PostgresBudgetRepository(PostgresRepository, BudgetRepository):
    """Data access layer for Budget entities in PostgreSQL."""

    TABLE = "budgets"
    ENTITY = "budget"

    def create(self, budget: Budget) -> Budget:
        record = self._validated_budget(budget)
        now = utc_now()
        record = record.model_copy(
            update={"is_active": True, "created_at": now, "updated_at": now}
        )
        response = self._execute(
            self._table().insert(record.model_dump(mode="json")),
            detail=f"name {record.name!r} for the same period",
        )
        row = self._first(response)
        self._logger.info("Budget created: %s", record.id)
        return Budget.model_validate(row) if row else record

    def get_by_id(self, budget_id: UUIDLike) -> Budget:
        bid = validate_uuid(budget_id, "budget_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("id", str(bid))
            .eq("is_active", True)
            .maybe_single()
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, bid)
        return Budget.model_validate(row)

    def get_by_family_id(self, family_id: UUIDLike) -> list[Budget]:
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("family_id", str(fid))
            .eq("is_active", True)
            .order("start_date", desc=True)
            .order("name")
        )
        return [Budget.model_validate(row) for row in self._rows(response)]

    def get_active_budgets(
        self, family_id: UUIDLike, at: Optional[datetime] = None
    ) -> list[Budget]:
        fid = validate_uuid(family_id, "family_id")
        moment = pg_timestamp(at or utc_now())
        response = self._execute(
            self._table()
            .select("*")
            .eq("family_id", str(fid))
            .eq("is_active", True)
            .lte("start_date", moment)
            .gte("end_date", moment)
            .order("start_date", desc=True)
            .order("name")
        )
        return [Budget.model_validate(row) for row in self._rows(response)]

    def update(self, budget: Budget) -> Budget:
        record = self._validated_budget(budget)
        response = self._execute(
            self._table()
            .update({
                "name": record.name,
                "amount": record.amount,
                "spent": record.spent,
                "period": str(record.period),
                "category_id": str(record.category_id) if record.category_id else None,
                "start_date": pg_timestamp(record.start_date),
                "end_date": pg_timestamp(record.end_date),
                "updated_at": utc_now().isoformat(),
            })
            .eq("id", str(record.id))
            .eq("family_id", str(record.family_id))
            .eq("is_active", True),
            detail=f"name {record.name!r} for the same period",
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, record.id)
        return Budget.model_validate(row)

    def delete(self, budget_id: UUIDLike, family_id: UUIDLike) -> None:
        bid = validate_uuid(budget_id, "budget_id")
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table()
            .update({"is_active": False, "updated_at": utc_now().isoformat()})
            .eq("id", str(bid))
            .eq("family_id", str(fid))
            .eq("is_active", True)
        )
        if not self._rows(response):
            raise NotFoundError(self.ENTITY, bid)
        self._logger.info("Budget deactivated: %s", bid)

    def update_spent_amount(self, budget_id: UUIDLike, spent: float) -> None:
        bid = validate_uuid(budget_id, "budget_id")
        valid_spent = self._validated_spent(spent)
        response = self._execute(
            self._table()
            .update({"spent": valid_spent, "updated_at": utc_now().isoformat()})
            .eq("id", str(bid))
            .eq("is_active", True)
        )
        if not self._rows(response):
            raise NotFoundError(self.ENTITY, bid)

    def find_affected_by_transaction(
        self, family_id: UUIDLike, category_id: Optional[UUIDLike], date: datetime
    ) -> list[uuid.UUID]:
        fid = validate_uuid(family_id, "family_id")
        moment = pg_timestamp(to_utc(date))
        query = (
            self._table()
            .select("id")
            .eq("family_id", str(fid))
            .eq("is_active", True)
            .lte("start_date", moment)
            .gte("end_date", moment)
        )
        if category_id is None:
            query = query.is_("category_id", "null")
        else:
            cid = validate_uuid(category_id, "category_id")
            query = query.or_(f"category_id.is.null,category_id.eq.{cid}")
        response = self._execute(query)
        return [uuid.UUID(str(row["id"])) for row in self._rows(response)]

"""
Budget Service.

Owns the spending arithmetic: a budget's ``spent`` is the sum of the
family's expense transactions dated inside ``[start_date, end_date]``,
restricted to the budget's category when one is set.  The figure is
recomputed on demand and cached on the budget row.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from family_budget.database import DatabaseManager
from family_budget.logger import StructuredLogger
from family_budget.models.budget import Budget, BudgetSummary, budget_status
from family_budget.models.enums import TransactionType
from family_budget.models.service_models import BudgetInput, ServiceResult
from family_budget.repositories.interfaces import (
    BudgetRepository,
    TransactionRepository,
    UUIDLike,
)
from family_budget.services.base_service import BaseService


class BudgetService(BaseService):
    """Service layer for budgets and their spending summaries."""

    def __init__(
        self,
        repo: BudgetRepository,
        transaction_repo: TransactionRepository,
        db: DatabaseManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo
        self._transaction_repo = transaction_repo

    # ------------------------------------------------------------------
    # Spending arithmetic
    # ------------------------------------------------------------------

    def calculate_spent(self, budget: Budget) -> float:
        """Sum of the expense transactions that count against *budget*."""
        if budget.category_id is not None:
            return self._transaction_repo.get_total_by_category_and_date_range(
                budget.category_id, budget.start_date, budget.end_date,
                TransactionType.EXPENSE,
            )
        return self._transaction_repo.get_total_by_family_and_date_range(
            budget.family_id, budget.start_date, budget.end_date,
            TransactionType.EXPENSE,
        )

    def recalculate_spent(self, budget_id: UUIDLike) -> float:
        """Recompute and store ``spent`` for one budget; return the new value."""
        budget = self._repo.get_by_id(budget_id)
        spent = self.calculate_spent(budget)
        self._repo.update_spent_amount(budget.id, spent)
        return spent

    def recalculate_affected(
        self, family_id: UUIDLike, category_id: Optional[UUIDLike], date: datetime
    ) -> list[uuid.UUID]:
        """Refresh every active budget a transaction on *date* counts against."""
        affected = self._repo.find_affected_by_transaction(family_id, category_id, date)
        for budget_id in affected:
            self.recalculate_spent(budget_id)
        return affected

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create_budget(self, payload: BudgetInput) -> ServiceResult[Budget]:
        try:
            budget = Budget(
                name=payload.name,
                amount=payload.amount,
                period=payload.period,
                start_date=payload.start_date,
                end_date=payload.end_date,
                family_id=payload.family_id,
                category_id=payload.category_id,
            )
            created = self._repo.create(budget)
            spent = self.calculate_spent(created)
            if spent:
                self._repo.update_spent_amount(created.id, spent)
                created = created.model_copy(update={"spent": spent})
        except Exception as exc:
            return self._error_result(exc, "create budget")

        self._audit("CREATE", "Budget", created.id, family_id=created.family_id,
                    details={"name": created.name, "amount": created.amount})
        return ServiceResult(success=True, data=created, status_code=201)

    def get_budget(self, budget_id: UUIDLike) -> ServiceResult[Budget]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_id(budget_id))
        except Exception as exc:
            return self._error_result(exc, "fetch budget")

    def list_budgets(self, family_id: UUIDLike) -> ServiceResult[list[Budget]]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_family_id(family_id))
        except Exception as exc:
            return self._error_result(exc, "list budgets")

    def list_active_budgets(
        self, family_id: UUIDLike, at: Optional[datetime] = None
    ) -> ServiceResult[list[Budget]]:
        try:
            return ServiceResult(success=True, data=self._repo.get_active_budgets(family_id, at))
        except Exception as exc:
            return self._error_result(exc, "list active budgets")

    def update_budget(
        self,
        budget_id: UUIDLike,
        family_id: UUIDLike,
        name: Optional[str] = None,
        amount: Optional[float] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> ServiceResult[Budget]:
        """Apply the given changes and refresh ``spent`` for the new range."""
        changes = {
            key: value
            for key, value in (
                ("name", name),
                ("amount", amount),
                ("start_date", start_date),
                ("end_date", end_date),
            )
            if value is not None
        }
        try:
            current = self._repo.get_by_id(budget_id)
            if str(current.family_id) != str(family_id):
                return ServiceResult(success=False, error="Budget not found.", status_code=404)
            candidate = current.model_copy(update=changes)
            candidate = candidate.model_copy(update={"spent": self.calculate_spent(candidate)})
            updated = self._repo.update(candidate)
        except Exception as exc:
            return self._error_result(exc, "update budget")

        self._audit("UPDATE", "Budget", updated.id, family_id=updated.family_id,
                    details={"fields": ",".join(sorted(changes))})
        return ServiceResult(success=True, data=updated)

    def delete_budget(self, budget_id: UUIDLike, family_id: UUIDLike) -> ServiceResult[None]:
        try:
            self._repo.delete(budget_id, family_id)
        except Exception as exc:
            return self._error_result(exc, "delete budget")

        self._audit("DEACTIVATE", "Budget", budget_id, family_id=family_id)
        return ServiceResult(success=True)

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def get_budget_summary(self, budget_id: UUIDLike) -> ServiceResult[BudgetSummary]:
        """
        Recompute spending for *budget_id* from the transactions and
        classify it.

        ``percentage`` is ``spent / amount * 100``; ``status`` is
        ``over_budget`` past 100%, ``warning`` past 80%, ``on_track`` past
        50% and ``safe`` otherwise.
        """
        try:
            budget = self._repo.get_by_id(budget_id)
            spent = self.calculate_spent(budget)
            if spent != budget.spent:
                self._repo.update_spent_amount(budget.id, spent)
        except Exception as exc:
            return self._error_result(exc, "summarise budget")

        current = budget.model_copy(update={"spent": spent})
        summary = BudgetSummary(
            budget=current,
            spent=spent,
            remaining=current.remaining,
            percentage=current.spent_percentage,
            is_over_budget=current.is_over_budget,
            status=budget_status(spent, current.amount),
        )
        return ServiceResult(success=True, data=summary)

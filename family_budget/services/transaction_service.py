"""
Transaction Service.

CRUD over transactions.  Every write refreshes the cached ``spent`` of
the budgets the transaction counts against; an update refreshes the
budgets of both the old and the new date/category.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from family_budget.database import DatabaseManager
from family_budget.errors import InvalidInputError
from family_budget.logger import StructuredLogger
from family_budget.models.enums import TransactionType
from family_budget.models.service_models import ServiceResult, TransactionInput
from family_budget.models.transaction import (
    Transaction,
    TransactionFilter,
    TransactionSummary,
)
from family_budget.repositories.interfaces import (
    CategoryRepository,
    TransactionRepository,
    UUIDLike,
)
from family_budget.services.base_service import BaseService
from family_budget.services.budget_service import BudgetService
from family_budget.utils.time_helpers import utc_now


class TransactionService(BaseService):
    """Service layer for income and expense transactions."""

    def __init__(
        self,
        repo: TransactionRepository,
        category_repo: CategoryRepository,
        budget_service: BudgetService,
        db: DatabaseManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo
        self._category_repo = category_repo
        self._budget_service = budget_service

    def _check_category(self, transaction: Transaction) -> None:
        """The category must be active, in the same family and of the same type."""
        category = self._category_repo.get_by_id(transaction.category_id)
        if category.family_id != transaction.family_id:
            raise InvalidInputError("category_id", "category belongs to another family")
        if category.type.value != transaction.type.value:
            raise InvalidInputError(
                "category_id",
                f"{category.type} category cannot hold a {transaction.type} transaction",
            )

    def _refresh_budgets(self, transaction: Transaction) -> None:
        if transaction.type != TransactionType.EXPENSE:
            return
        self._budget_service.recalculate_affected(
            transaction.family_id, transaction.category_id, transaction.date,
        )

    def create_transaction(self, payload: TransactionInput) -> ServiceResult[Transaction]:
        try:
            transaction = Transaction(
                amount=payload.amount,
                type=payload.type,
                description=payload.description,
                category_id=payload.category_id,
                user_id=payload.user_id,
                family_id=payload.family_id,
                date=payload.date or utc_now(),
                tags=payload.tags,
            )
            self._check_category(transaction)
            created = self._repo.create(transaction)
            self._refresh_budgets(created)
        except Exception as exc:
            return self._error_result(exc, "create transaction")

        self._audit("CREATE", "Transaction", created.id, family_id=created.family_id,
                    user_id=created.user_id,
                    details={"amount": created.amount, "type": str(created.type)})
        return ServiceResult(success=True, data=created, status_code=201)

    def get_transaction(self, transaction_id: UUIDLike) -> ServiceResult[Transaction]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_id(transaction_id))
        except Exception as exc:
            return self._error_result(exc, "fetch transaction")

    def list_transactions(self, criteria: TransactionFilter) -> ServiceResult[list[Transaction]]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_filter(criteria))
        except Exception as exc:
            return self._error_result(exc, "list transactions")

    def update_transaction(
        self,
        transaction_id: UUIDLike,
        family_id: UUIDLike,
        amount: Optional[float] = None,
        description: Optional[str] = None,
        category_id: Optional[UUIDLike] = None,
        date: Optional[datetime] = None,
        tags: Optional[list[str]] = None,
    ) -> ServiceResult[Transaction]:
        """Apply the given changes; ``None`` leaves a field untouched."""
        changes = {
            key: value
            for key, value in (
                ("amount", amount),
                ("description", description),
                ("category_id", category_id),
                ("date", date),
                ("tags", tags),
            )
            if value is not None
        }
        try:
            current = self._repo.get_by_id(transaction_id)
            if str(current.family_id) != str(family_id):
                return ServiceResult(
                    success=False, error="Transaction not found.", status_code=404,
                )
            candidate = Transaction.model_validate({**current.model_dump(), **changes})
            if "category_id" in changes:
                self._check_category(candidate)
            updated = self._repo.update(candidate)
            self._refresh_budgets(current)
            self._refresh_budgets(updated)
        except Exception as exc:
            return self._error_result(exc, "update transaction")

        self._audit("UPDATE", "Transaction", updated.id, family_id=updated.family_id,
                    details={"fields": ",".join(sorted(changes))})
        return ServiceResult(success=True, data=updated)

    def delete_transaction(
        self, transaction_id: UUIDLike, family_id: UUIDLike
    ) -> ServiceResult[None]:
        try:
            current = self._repo.get_by_id(transaction_id)
            self._repo.delete(transaction_id, family_id)
            self._refresh_budgets(current)
        except Exception as exc:
            return self._error_result(exc, "delete transaction")

        self._audit("DELETE", "Transaction", transaction_id, family_id=family_id)
        return ServiceResult(success=True)

    def get_summary(
        self, family_id: UUIDLike, start: datetime, end: datetime
    ) -> ServiceResult[TransactionSummary]:
        try:
            return ServiceResult(success=True, data=self._repo.get_summary(family_id, start, end))
        except Exception as exc:
            return self._error_result(exc, "summarise transactions")

"""
Report Service.

Builds a :class:`~family_budget.models.report.ReportData` snapshot from
repository queries and persists it.  All aggregation happens here, so a
report has the same shape whichever backend produced it.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Union

from family_budget.config import AppConfig
from family_budget.database import DatabaseManager
from family_budget.logger import StructuredLogger
from family_budget.models.enums import ReportPeriod, ReportType, TransactionType
from family_budget.models.report import (
    BudgetComparisonItem,
    CategoryReportItem,
    DailyReportItem,
    Report,
    ReportData,
    TransactionReportItem,
)
from family_budget.models.service_models import ServiceResult
from family_budget.models.transaction import Transaction, TransactionFilter
from family_budget.repositories.interfaces import (
    BudgetRepository,
    CategoryRepository,
    ReportRepository,
    TransactionRepository,
    UUIDLike,
)
from family_budget.services.base_service import BaseService
from family_budget.services.budget_service import BudgetService
from family_budget.utils.time_helpers import to_utc
from family_budget.utils.validation import validate_date_range

TOP_TRANSACTIONS_LIMIT: int = 10
PERCENTAGE_BASE: float = 100.0


def _percentage(part: float, whole: float) -> float:
    return (part / whole) * PERCENTAGE_BASE if whole else 0.0


class ReportService(BaseService):
    """Service layer for generated reports."""

    def __init__(
        self,
        repo: ReportRepository,
        transaction_repo: TransactionRepository,
        category_repo: CategoryRepository,
        budget_repo: BudgetRepository,
        budget_service: BudgetService,
        config: AppConfig,
        db: DatabaseManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo
        self._transaction_repo = transaction_repo
        self._category_repo = category_repo
        self._budget_repo = budget_repo
        self._budget_service = budget_service
        self._config = config

    # ------------------------------------------------------------------
    # Data collection
    # ------------------------------------------------------------------

    def _transactions_in_range(
        self, family_id: uuid.UUID, start: datetime, end: datetime
    ) -> list[Transaction]:
        """Every transaction of the family in the range, paging through results.

        The repository may clamp the requested page, so the offset advances
        by the rows actually returned and only an empty page ends the scan.
        """
        page_size = self._config.MAX_QUERY_LIMIT
        collected: list[Transaction] = []
        offset = 0
        while True:
            page = self._transaction_repo.get_by_filter(TransactionFilter(
                family_id=family_id,
                date_from=start,
                date_to=end,
                limit=page_size,
                offset=offset,
            ))
            if not page:
                return collected
            collected.extend(page)
            offset += len(page)

    def _category_names(self, family_id: uuid.UUID) -> dict[uuid.UUID, str]:
        categories = self._category_repo.get_by_family_id(family_id)
        return {category.id: category.name for category in categories}

    @staticmethod
    def _category_breakdown(
        transactions: list[Transaction], names: dict[uuid.UUID, str]
    ) -> list[CategoryReportItem]:
        amounts: dict[uuid.UUID, float] = defaultdict(float)
        counts: dict[uuid.UUID, int] = defaultdict(int)
        for transaction in transactions:
            amounts[transaction.category_id] += transaction.amount
            counts[transaction.category_id] += 1
        total = sum(amounts.values())
        items = [
            CategoryReportItem(
                category_id=category_id,
                category_name=names.get(category_id, "Unknown"),
                amount=amount,
                percentage=_percentage(amount, total),
                count=counts[category_id],
            )
            for category_id, amount in amounts.items()
        ]
        return sorted(items, key=lambda item: item.amount, reverse=True)

    @staticmethod
    def _daily_breakdown(
        transactions: list[Transaction], start: datetime, end: datetime
    ) -> list[DailyReportItem]:
        income: dict[datetime, float] = defaultdict(float)
        expenses: dict[datetime, float] = defaultdict(float)
        for transaction in transactions:
            day = to_utc(transaction.date).replace(hour=0, minute=0, second=0, microsecond=0)
            if transaction.type == TransactionType.INCOME:
                income[day] += transaction.amount
            else:
                expenses[day] += transaction.amount

        items: list[DailyReportItem] = []
        day = to_utc(start).replace(hour=0, minute=0, second=0, microsecond=0)
        last = to_utc(end)
        while day <= last:
            items.append(DailyReportItem(
                date=day,
                income=income[day],
                expenses=expenses[day],
                balance=income[day] - expenses[day],
            ))
            day += timedelta(days=1)
        return items

    @staticmethod
    def _top_expenses(
        transactions: list[Transaction], names: dict[uuid.UUID, str]
    ) -> list[TransactionReportItem]:
        expenses = [t for t in transactions if t.type == TransactionType.EXPENSE]
        expenses.sort(key=lambda t: t.amount, reverse=True)
        return [
            TransactionReportItem(
                id=t.id,
                amount=t.amount,
                description=t.description,
                category=names.get(t.category_id, "Unknown"),
                date=t.date,
            )
            for t in expenses[:TOP_TRANSACTIONS_LIMIT]
        ]

    def _budget_comparison(
        self, family_id: uuid.UUID, start: datetime, end: datetime
    ) -> list[BudgetComparisonItem]:
        items: list[BudgetComparisonItem] = []
        for budget in self._budget_repo.get_by_family_id(family_id):
            # Only budgets overlapping the report range.
            if to_utc(budget.end_date) < start or to_utc(budget.start_date) > end:
                continue
            actual = self._budget_service.calculate_spent(budget)
            items.append(BudgetComparisonItem(
                budget_id=budget.id,
                budget_name=budget.name,
                planned=budget.amount,
                actual=actual,
                difference=budget.amount - actual,
                percentage=_percentage(actual, budget.amount),
            ))
        return items

    def build_report_data(
        self,
        family_id: uuid.UUID,
        report_type: ReportType,
        start: datetime,
        end: datetime,
    ) -> ReportData:
        """
        Aggregate the family's activity between *start* and *end*.

        ``expenses`` and ``income`` reports restrict the breakdowns to
        that transaction type; ``budget`` reports add the budget
        comparison; ``cash_flow`` includes the daily series;
        ``category_breakdown`` only the per-category figures.  Totals are
        always filled in.
        """
        start, end = to_utc(start), to_utc(end)
        transactions = self._transactions_in_range(family_id, start, end)
        names = self._category_names(family_id)

        income = [t for t in transactions if t.type == TransactionType.INCOME]
        expenses = [t for t in transactions if t.type == TransactionType.EXPENSE]
        total_income = sum(t.amount for t in income)
        total_expenses = sum(t.amount for t in expenses)
        data = ReportData(
            total_income=total_income,
            total_expenses=total_expenses,
            net_income=total_income - total_expenses,
        )

        if report_type == ReportType.EXPENSES:
            data.category_breakdown = self._category_breakdown(expenses, names)
            data.daily_breakdown = self._daily_breakdown(expenses, start, end)
            data.top_expenses = self._top_expenses(expenses, names)
        elif report_type == ReportType.INCOME:
            data.category_breakdown = self._category_breakdown(income, names)
            data.daily_breakdown = self._daily_breakdown(income, start, end)
        elif report_type == ReportType.BUDGET:
            data.budget_comparison = self._budget_comparison(family_id, start, end)
        elif report_type == ReportType.CASH_FLOW:
            data.daily_breakdown = self._daily_breakdown(transactions, start, end)
        else:
            data.category_breakdown = self._category_breakdown(expenses, names)
        return data

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_report(
        self,
        family_id: UUIDLike,
        user_id: UUIDLike,
        name: str,
        report_type: Union[ReportType, str],
        period: Union[ReportPeriod, str],
        start: datetime,
        end: datetime,
    ) -> ServiceResult[Report]:
        try:
            report = Report(
                name=name,
                type=report_type,
                period=period,
                family_id=family_id,
                user_id=user_id,
                start_date=start,
                end_date=end,
            )
            validate_date_range(
                to_utc(report.start_date), to_utc(report.end_date), allow_equal=True,
            )
            report.data = self.build_report_data(
                report.family_id, report.type, report.start_date, report.end_date,
            )
            created = self._repo.create(report)
        except Exception as exc:
            return self._error_result(exc, "generate report")

        self._audit("CREATE", "Report", created.id, family_id=created.family_id,
                    user_id=created.user_id, details={"type": str(created.type)})
        return ServiceResult(success=True, data=created, status_code=201)

    def get_report(self, report_id: UUIDLike) -> ServiceResult[Report]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_id(report_id))
        except Exception as exc:
            return self._error_result(exc, "fetch report")

    def list_reports(self, family_id: UUIDLike) -> ServiceResult[list[Report]]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_family_id(family_id))
        except Exception as exc:
            return self._error_result(exc, "list reports")

    def delete_report(self, report_id: UUIDLike, family_id: UUIDLike) -> ServiceResult[None]:
        try:
            self._repo.delete(report_id, family_id)
        except Exception as exc:
            return self._error_result(exc, "delete report")

        self._audit("DELETE", "Report", report_id, family_id=family_id)
        return ServiceResult(success=True)

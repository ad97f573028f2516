"""
Data Models Package.

Re-exports all Pydantic models:
    from family_budget.models import Family, User, Invite, Category
    from family_budget.models import Transaction, Budget, Report
    from family_budget.models import UserRole, InviteStatus, TransactionType
"""

from family_budget.models.budget import Budget, BudgetSummary, budget_status
from family_budget.models.category import Category
from family_budget.models.enums import (
    BudgetPeriod,
    BudgetStatus,
    CategoryType,
    InviteStatus,
    ReportPeriod,
    ReportType,
    TransactionType,
    UserRole,
)
from family_budget.models.family import Family, FamilyStatistics
from family_budget.models.invite import Invite
from family_budget.models.report import (
    BudgetComparisonItem,
    CategoryReportItem,
    DailyReportItem,
    Report,
    ReportData,
    TransactionReportItem,
)
from family_budget.models.service_models import ServiceResult
from family_budget.models.transaction import (
    Transaction,
    TransactionFilter,
    TransactionSummary,
)
from family_budget.models.user import User

__all__ = [
    "Budget",
    "BudgetComparisonItem",
    "BudgetPeriod",
    "BudgetStatus",
    "BudgetSummary",
    "Category",
    "CategoryReportItem",
    "CategoryType",
    "DailyReportItem",
    "Family",
    "FamilyStatistics",
    "Invite",
    "InviteStatus",
    "Report",
    "ReportData",
    "ReportPeriod",
    "ReportType",
    "ServiceResult",
    "Transaction",
    "TransactionFilter",
    "TransactionReportItem",
    "TransactionSummary",
    "TransactionType",
    "User",
    "UserRole",
    "budget_status",
]

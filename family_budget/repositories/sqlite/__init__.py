"""SQLite implementations of the repository interfaces."""

from family_budget.repositories.sqlite.budget_repository import SQLiteBudgetRepository
from family_budget.repositories.sqlite.category_repository import SQLiteCategoryRepository
from family_budget.repositories.sqlite.family_repository import SQLiteFamilyRepository
from family_budget.repositories.sqlite.invite_repository import SQLiteInviteRepository
from family_budget.repositories.sqlite.report_repository import SQLiteReportRepository
from family_budget.repositories.sqlite.transaction_repository import SQLiteTransactionRepository
from family_budget.repositories.sqlite.user_repository import SQLiteUserRepository

__all__ = [
    "SQLiteBudgetRepository",
    "SQLiteCategoryRepository",
    "SQLiteFamilyRepository",
    "SQLiteInviteRepository",
    "SQLiteReportRepository",
    "SQLiteTransactionRepository",
    "SQLiteUserRepository",
]

"""PostgreSQL (Supabase/PostgREST) implementations of the repository interfaces."""

from family_budget.repositories.postgres.budget_repository import PostgresBudgetRepository
from family_budget.repositories.postgres.category_repository import PostgresCategoryRepository
from family_budget.repositories.postgres.family_repository import PostgresFamilyRepository
from family_budget.repositories.postgres.invite_repository import PostgresInviteRepository
from family_budget.repositories.postgres.report_repository import PostgresReportRepository
from family_budget.repositories.postgres.transaction_repository import (
    PostgresTransactionRepository,
)
from family_budget.repositories.postgres.user_repository import PostgresUserRepository

__all__ = [
    "PostgresBudgetRepository",
    "PostgresCategoryRepository",
    "PostgresFamilyRepository",
    "PostgresInviteRepository",
    "PostgresReportRepository",
    "PostgresTransactionRepository",
    "PostgresUserRepository",
]

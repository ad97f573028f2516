"""
Repository Layer Package.

Provides data-access abstractions over three interchangeable stores:
SQLite (embedded), PostgreSQL (through Supabase/PostgREST) and MongoDB.
Services only ever see the interfaces in
:mod:`family_budget.repositories.interfaces`; ``create_repositories()``
picks the implementation matching ``DatabaseManager.backend``.

Usage:
    from family_budget.repositories import create_repositories

    repos = create_repositories(db, logger)
    family = repos["families"].get_by_id(family_id)
"""

from __future__ import annotations

from typing import Optional, TypedDict

from family_budget.config import AppConfig
from family_budget.database import DatabaseManager
from family_budget.logger import StructuredLogger
from family_budget.repositories.base_repository import BaseRepository
from family_budget.repositories.interfaces import (
    BudgetRepository,
    CategoryRepository,
    FamilyRepository,
    InviteRepository,
    ReportRepository,
    TransactionRepository,
    UserRepository,
)
from family_budget.repositories import mongo, postgres, sqlite


class RepositoryContainer(TypedDict):
    """One repository per entity, all bound to the same backend."""

    families: FamilyRepository
    users: UserRepository
    invites: InviteRepository
    categories: CategoryRepository
    transactions: TransactionRepository
    budgets: BudgetRepository
    reports: ReportRepository


_IMPLEMENTATIONS: dict[str, dict[str, type[BaseRepository]]] = {
    "sqlite": {
        "families": sqlite.SQLiteFamilyRepository,
        "users": sqlite.SQLiteUserRepository,
        "invites": sqlite.SQLiteInviteRepository,
        "categories": sqlite.SQLiteCategoryRepository,
        "transactions": sqlite.SQLiteTransactionRepository,
        "budgets": sqlite.SQLiteBudgetRepository,
        "reports": sqlite.SQLiteReportRepository,
    },
    "postgresql": {
        "families": postgres.PostgresFamilyRepository,
        "users": postgres.PostgresUserRepository,
        "invites": postgres.PostgresInviteRepository,
        "categories": postgres.PostgresCategoryRepository,
        "transactions": postgres.PostgresTransactionRepository,
        "budgets": postgres.PostgresBudgetRepository,
        "reports": postgres.PostgresReportRepository,
    },
    "mongodb": {
        "families": mongo.MongoFamilyRepository,
        "users": mongo.MongoUserRepository,
        "invites": mongo.MongoInviteRepository,
        "categories": mongo.MongoCategoryRepository,
        "transactions": mongo.MongoTransactionRepository,
        "budgets": mongo.MongoBudgetRepository,
        "reports": mongo.MongoReportRepository,
    },
}


def create_repositories(
    db: DatabaseManager,
    logger: StructuredLogger,
    config: Optional[AppConfig] = None,
) -> RepositoryContainer:
    """Instantiate every repository for the backend *db* was opened with.

    *config* supplies the pagination bounds; the module defaults apply
    when it is omitted.
    """
    classes = _IMPLEMENTATIONS[db.backend]
    return RepositoryContainer(
        **{name: cls(db=db, logger=logger, config=config) for name, cls in classes.items()}  # type: ignore[typeddict-item]
    )


__all__ = [
    "BaseRepository",
    "BudgetRepository",
    "CategoryRepository",
    "FamilyRepository",
    "InviteRepository",
    "ReportRepository",
    "RepositoryContainer",
    "TransactionRepository",
    "UserRepository",
    "create_repositories",
]

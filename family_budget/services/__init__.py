"""
Business Logic Services Package.

Services depend on the repository interfaces for data access and return
``ServiceResult`` envelopes carrying HTTP-style status codes.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the application layer (commands / handlers) can
consume without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import TypedDict

from family_budget.config import AppConfig
from family_budget.database import DatabaseManager
from family_budget.logger import get_logger
from family_budget.repositories import RepositoryContainer, create_repositories
from family_budget.services.budget_service import BudgetService
from family_budget.services.category_service import CategoryService
from family_budget.services.family_service import FamilyService
from family_budget.services.invite_service import InviteService
from family_budget.services.report_service import ReportService
from family_budget.services.transaction_service import TransactionService
from family_budget.services.user_service import UserService


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    family_service: FamilyService
    user_service: UserService
    invite_service: InviteService
    category_service: CategoryService
    transaction_service: TransactionService
    budget_service: BudgetService
    report_service: ReportService


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    repositories: RepositoryContainer | None = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    application entry-point calls this once at startup and passes the
    returned dict to commands as needed.

    Args:
        db: Initialised DatabaseManager for the configured backend.
        config: Application configuration (injected into services that need it).
        repositories: Pre-built repositories; created from *db* when omitted.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    repos = repositories or create_repositories(db, get_logger("repositories"), config)

    # ------------------------------------------------------------------
    # 2. Leaf services (no service dependencies)
    # ------------------------------------------------------------------
    user_service = UserService(
        repo=repos["users"],
        config=config,
        db=db,
        logger=logger,
    )
    category_service = CategoryService(
        repo=repos["categories"],
        db=db,
        logger=logger,
    )
    budget_service = BudgetService(
        repo=repos["budgets"],
        transaction_repo=repos["transactions"],
        db=db,
        logger=logger,
    )

    # ------------------------------------------------------------------
    # 3. Orchestration services (depend on other services)
    # ------------------------------------------------------------------
    family_service = FamilyService(
        repo=repos["families"],
        user_service=user_service,
        category_service=category_service,
        db=db,
        logger=logger,
    )
    invite_service = InviteService(
        repo=repos["invites"],
        user_repo=repos["users"],
        user_service=user_service,
        config=config,
        db=db,
        logger=logger,
    )
    transaction_service = TransactionService(
        repo=repos["transactions"],
        category_repo=repos["categories"],
        budget_service=budget_service,
        db=db,
        logger=logger,
    )
    report_service = ReportService(
        repo=repos["reports"],
        transaction_repo=repos["transactions"],
        category_repo=repos["categories"],
        budget_repo=repos["budgets"],
        budget_service=budget_service,
        config=config,
        db=db,
        logger=logger,
    )

    return ServiceContainer(
        family_service=family_service,
        user_service=user_service,
        invite_service=invite_service,
        category_service=category_service,
        transaction_service=transaction_service,
        budget_service=budget_service,
        report_service=report_service,
    )


__all__ = [
    "BudgetService",
    "CategoryService",
    "FamilyService",
    "InviteService",
    "ReportService",
    "ServiceContainer",
    "TransactionService",
    "UserService",
    "create_services",
]

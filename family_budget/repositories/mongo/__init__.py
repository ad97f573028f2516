"""MongoDB implementations of the repository interfaces."""

from family_budget.repositories.mongo.budget_repository import MongoBudgetRepository
from family_budget.repositories.mongo.category_repository import MongoCategoryRepository
from family_budget.repositories.mongo.family_repository import MongoFamilyRepository
from family_budget.repositories.mongo.invite_repository import MongoInviteRepository
from family_budget.repositories.mongo.report_repository import MongoReportRepository
from family_budget.repositories.mongo.transaction_repository import MongoTransactionRepository
from family_budget.repositories.mongo.user_repository import MongoUserRepository

__all__ = [
    "MongoBudgetRepository",
    "MongoCategoryRepository",
    "MongoFamilyRepository",
    "MongoInviteRepository",
    "MongoReportRepository",
    "MongoTransactionRepository",
    "MongoUserRepository",
]

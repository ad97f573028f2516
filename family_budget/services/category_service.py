"""
Category Service.

CRUD over a family's income/expense categories plus the starter set
created for every new family.
"""

from __future__ import annotations

from typing import Optional, Union

from family_budget.database import DatabaseManager
from family_budget.logger import StructuredLogger
from family_budget.models.category import Category
from family_budget.models.enums import CategoryType
from family_budget.models.service_models import CategoryInput, ServiceResult
from family_budget.repositories.interfaces import CategoryRepository, UUIDLike
from family_budget.services.base_service import BaseService
from family_budget.utils.validation import validate_uuid

# (name, color, icon) triples seeded into every new family.
DEFAULT_EXPENSE_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("Groceries", "#FF6B6B", "🛒"),
    ("Transport", "#4ECDC4", "🚗"),
    ("Utilities", "#45B7D1", "🏠"),
    ("Entertainment", "#F7DC6F", "🎬"),
    ("Health", "#BB8FCE", "🏥"),
    ("Clothing", "#85C1E9", "👕"),
    ("Education", "#F8C471", "📚"),
    ("Other", "#AEB6BF", "📦"),
)
DEFAULT_INCOME_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("Salary", "#58D68D", "💰"),
    ("Bonus", "#76D7C4", "🎁"),
    ("Freelance", "#F9E79F", "💻"),
    ("Investments", "#D2B4DE", "📈"),
    ("Other income", "#A9DFBF", "💵"),
)


class CategoryService(BaseService):
    """Service layer for category management."""

    def __init__(
        self,
        repo: CategoryRepository,
        db: DatabaseManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo

    def create_category(self, payload: CategoryInput) -> ServiceResult[Category]:
        try:
            category = Category(
                name=payload.name,
                type=payload.type,
                family_id=payload.family_id,
                description=payload.description,
                parent_id=payload.parent_id,
                **{
                    key: value
                    for key, value in (("color", payload.color), ("icon", payload.icon))
                    if value is not None
                },
            )
            created = self._repo.create(category)
        except Exception as exc:
            return self._error_result(exc, "create category")

        self._audit("CREATE", "Category", created.id, family_id=created.family_id,
                    details={"name": created.name, "type": str(created.type)})
        return ServiceResult(success=True, data=created, status_code=201)

    def get_category(self, category_id: UUIDLike) -> ServiceResult[Category]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_id(category_id))
        except Exception as exc:
            return self._error_result(exc, "fetch category")

    def list_categories(
        self,
        family_id: UUIDLike,
        category_type: Optional[Union[CategoryType, str]] = None,
    ) -> ServiceResult[list[Category]]:
        try:
            if category_type is None:
                categories = self._repo.get_by_family_id(family_id)
            else:
                categories = self._repo.get_by_type(family_id, category_type)
            return ServiceResult(success=True, data=categories)
        except Exception as exc:
            return self._error_result(exc, "list categories")

    def update_category(
        self,
        category_id: UUIDLike,
        family_id: UUIDLike,
        name: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> ServiceResult[Category]:
        """Apply the given changes; ``None`` leaves a field untouched."""
        try:
            current = self._repo.get_by_id(category_id)
            if str(current.family_id) != str(family_id):
                return ServiceResult(
                    success=False, error="Category not found.", status_code=404,
                )
            changes = {
                key: value
                for key, value in (
                    ("name", name),
                    ("description", description),
                    ("color", color),
                    ("icon", icon),
                )
                if value is not None
            }
            updated = self._repo.update(current.model_copy(update=changes))
        except Exception as exc:
            return self._error_result(exc, "update category")

        self._audit("UPDATE", "Category", updated.id, family_id=updated.family_id,
                    details={"fields": ",".join(sorted(changes))})
        return ServiceResult(success=True, data=updated)

    def delete_category(
        self, category_id: UUIDLike, family_id: UUIDLike
    ) -> ServiceResult[None]:
        try:
            self._repo.delete(category_id, family_id)
        except Exception as exc:
            return self._error_result(exc, "delete category")

        self._audit("DEACTIVATE", "Category", category_id, family_id=family_id)
        return ServiceResult(success=True)

    def create_default_categories(
        self, family_id: UUIDLike
    ) -> ServiceResult[list[Category]]:
        """Seed the starter expense and income categories for *family_id*.

        All inserts share one batch, so on SQLite either every default
        category is written or none is.
        """
        seeds = [
            (name, color, icon, CategoryType.EXPENSE)
            for name, color, icon in DEFAULT_EXPENSE_CATEGORIES
        ] + [
            (name, color, icon, CategoryType.INCOME)
            for name, color, icon in DEFAULT_INCOME_CATEGORIES
        ]
        created: list[Category] = []
        try:
            fid = validate_uuid(family_id, "family_id")
            with self._db.batch_write():
                for name, color, icon, category_type in seeds:
                    created.append(self._repo.create(Category(
                        name=name,
                        type=category_type,
                        color=color,
                        icon=icon,
                        family_id=fid,
                    )))
        except Exception as exc:
            return self._error_result(exc, "create default categories")

        self._logger.info("Created %d default categories for family %s", len(created), fid)
        return ServiceResult(success=True, data=created, status_code=201)

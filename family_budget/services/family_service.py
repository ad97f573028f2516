"""
Family Service.

Family CRUD plus ``setup_family``, the one-shot onboarding flow that
creates a family, its first ADMIN and the default categories.
"""

from __future__ import annotations

from typing import Optional

from family_budget.database import DatabaseManager
from family_budget.logger import StructuredLogger
from family_budget.models.enums import UserRole
from family_budget.models.family import Family, FamilyStatistics
from family_budget.models.service_models import ServiceResult, UserRegistration
from family_budget.models.user import User
from family_budget.repositories.interfaces import FamilyRepository, UUIDLike
from family_budget.services.base_service import BaseService
from family_budget.services.category_service import CategoryService
from family_budget.services.user_service import UserService


class FamilyService(BaseService):
    """Service layer for families."""

    def __init__(
        self,
        repo: FamilyRepository,
        user_service: UserService,
        category_service: CategoryService,
        db: DatabaseManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo
        self._user_service = user_service
        self._category_service = category_service

    def create_family(self, name: str, currency: str = "USD") -> ServiceResult[Family]:
        try:
            family = self._repo.create(Family(name=name, currency=currency))
        except Exception as exc:
            return self._error_result(exc, "create family")

        self._audit("CREATE", "Family", family.id, family_id=family.id,
                    details={"name": family.name, "currency": family.currency})
        return ServiceResult(success=True, data=family, status_code=201)

    def get_family(self, family_id: UUIDLike) -> ServiceResult[Family]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_id(family_id))
        except Exception as exc:
            return self._error_result(exc, "fetch family")

    def update_family(
        self,
        family_id: UUIDLike,
        name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> ServiceResult[Family]:
        changes = {
            key: value
            for key, value in (("name", name), ("currency", currency))
            if value is not None
        }
        try:
            current = self._repo.get_by_id(family_id)
            updated = self._repo.update(current.model_copy(update=changes))
        except Exception as exc:
            return self._error_result(exc, "update family")

        self._audit("UPDATE", "Family", updated.id, family_id=updated.id,
                    details={"fields": ",".join(sorted(changes))})
        return ServiceResult(success=True, data=updated)

    def delete_family(self, family_id: UUIDLike) -> ServiceResult[None]:
        """Delete the family and everything it owns."""
        try:
            self._repo.delete(family_id)
        except Exception as exc:
            return self._error_result(exc, "delete family")

        self._audit("DELETE", "Family", family_id, family_id=family_id)
        return ServiceResult(success=True)

    def get_statistics(self, family_id: UUIDLike) -> ServiceResult[FamilyStatistics]:
        try:
            return ServiceResult(success=True, data=self._repo.get_statistics(family_id))
        except Exception as exc:
            return self._error_result(exc, "compute family statistics")

    def setup_family(
        self,
        name: str,
        currency: str,
        admin_email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> ServiceResult[User]:
        """
        Onboard a new family in one call.

        Steps:
            1. Create the family.
            2. Register the first user as ADMIN.
            3. Seed the default categories.

        When step 2 or 3 fails the family is deleted again (cascading to
        anything already written) and the failing step's result is
        returned.  On success the new admin user is returned.
        """
        created = self.create_family(name, currency)
        if not created.success or created.data is None:
            return ServiceResult(
                success=False, error=created.error, status_code=created.status_code,
            )
        family = created.data

        admin = self._user_service.register_user(UserRegistration(
            email=admin_email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=UserRole.ADMIN,
            family_id=family.id,
        ))
        if not admin.success:
            self._rollback_family(family)
            return admin

        categories = self._category_service.create_default_categories(family.id)
        if not categories.success:
            self._rollback_family(family)
            return ServiceResult(
                success=False, error=categories.error, status_code=categories.status_code,
            )

        self._logger.info("Family %s set up with admin %s", family.id, admin_email)
        return admin

    def _rollback_family(self, family: Family) -> None:
        try:
            self._repo.delete(family.id)
        except Exception as exc:
            self._logger.exception(
                "Could not roll back family %s after failed setup: %s", family.id, exc,
            )
        else:
            self._logger.warning("Rolled back family %s after failed setup.", family.id)

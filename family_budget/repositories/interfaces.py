"""
Repository Interfaces.

One abstract base class per entity.  Every backend package
(``sqlite``, ``postgres``, ``mongo``) implements all seven, so services
depend only on these contracts.

Each write path runs the same steps regardless of backend:

1. validate identifiers and enum values,
2. sanitize free text (trim, case-fold),
3. stamp ``created_at`` / ``updated_at``,
4. run a parameterized query,
5. translate "zero rows" into :class:`~family_budget.errors.NotFoundError`
   and unique violations into :class:`~family_budget.errors.ConflictError`.

Steps 1 and 2 are shared and live here as ``_validated_*`` helpers;
backends implement steps 3 to 5.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Union

from family_budget.errors import InvalidInputError
from family_budget.models.budget import Budget
from family_budget.models.category import Category
from family_budget.models.enums import (
    BudgetPeriod,
    CategoryType,
    InviteStatus,
    ReportPeriod,
    ReportType,
    TransactionType,
    UserRole,
)
from family_budget.models.family import Family, FamilyStatistics
from family_budget.models.invite import Invite
from family_budget.models.report import Report
from family_budget.models.transaction import (
    Transaction,
    TransactionFilter,
    TransactionSummary,
)
from family_budget.models.user import User
from family_budget.utils.time_helpers import to_utc, to_utc_millis
from family_budget.utils.validation import (
    MAX_DESCRIPTION_LENGTH,
    validate_amount,
    validate_color,
    validate_currency,
    validate_date_range,
    validate_description,
    validate_email,
    validate_enum,
    validate_family_name,
    validate_name,
    validate_uuid,
)

__all__ = [
    "BudgetRepository",
    "CategoryRepository",
    "FamilyRepository",
    "InviteRepository",
    "ReportRepository",
    "TransactionRepository",
    "UserRepository",
]

UUIDLike = Union[uuid.UUID, str]

_MAX_ICON_LENGTH = 50
_MAX_TAG_LENGTH = 50


def _optional_uuid(value: Optional[UUIDLike], field: str) -> Optional[uuid.UUID]:
    return None if value is None else validate_uuid(value, field)


# ---------------------------------------------------------------------------
# Family
# ---------------------------------------------------------------------------


class FamilyRepository(ABC):
    """Persistence contract for :class:`Family` (the tenant root)."""

    @abstractmethod
    def create(self, family: Family) -> Family:
        """Insert *family* and return it with timestamps stamped."""

    @abstractmethod
    def get_by_id(self, family_id: UUIDLike) -> Family:
        """Raise ``NotFoundError`` when no family has *family_id*."""

    @abstractmethod
    def get_single(self) -> Family:
        """Return the oldest family (single-family deployments)."""

    @abstractmethod
    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> list[Family]:
        """Families ordered by ``created_at``."""

    @abstractmethod
    def update(self, family: Family) -> Family:
        """Persist name and currency changes."""

    @abstractmethod
    def delete(self, family_id: UUIDLike) -> None:
        """Hard delete; everything the family owns goes with it."""

    @abstractmethod
    def get_statistics(self, family_id: UUIDLike) -> FamilyStatistics:
        """Counts and totals across the family's dependent data."""

    @staticmethod
    def _validated_family(family: Family) -> Family:
        return family.model_copy(update={
            "id": validate_uuid(family.id, "family_id"),
            "name": validate_family_name(family.name),
            "currency": validate_currency(family.currency),
        })


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


class UserRepository(ABC):
    """Persistence contract for :class:`User`.

    Users are soft-deleted: reads only ever see active rows, and a
    deactivated user's email becomes free for re-registration.
    """

    @abstractmethod
    def create(self, user: User) -> User:
        """Insert *user*; ``ConflictError`` when the email is taken."""

    @abstractmethod
    def get_by_id(self, user_id: UUIDLike) -> User:
        """Active user by id."""

    @abstractmethod
    def get_by_email(self, email: str) -> User:
        """Active user by case-insensitive email."""

    @abstractmethod
    def get_by_family_id(self, family_id: UUIDLike) -> list[User]:
        """Active users of a family, oldest first."""

    @abstractmethod
    def get_by_role(self, family_id: UUIDLike, role: Union[UserRole, str]) -> list[User]:
        """Active users of a family holding *role*."""

    @abstractmethod
    def update(self, user: User) -> User:
        """Persist email, names, role and password hash."""

    @abstractmethod
    def delete(self, user_id: UUIDLike, family_id: UUIDLike) -> None:
        """Soft delete (``is_active = false``)."""

    @abstractmethod
    def update_last_login(self, user_id: UUIDLike) -> None:
        """Stamp ``last_login`` with the current time."""

    @staticmethod
    def _validated_user(user: User) -> User:
        if not user.password_hash or not user.password_hash.strip():
            raise InvalidInputError("password_hash", "password hash cannot be empty")
        return user.model_copy(update={
            "id": validate_uuid(user.id, "user_id"),
            "family_id": validate_uuid(user.family_id, "family_id"),
            "email": validate_email(user.email),
            "first_name": validate_name(user.first_name, "first_name"),
            "last_name": validate_name(user.last_name, "last_name"),
            "role": validate_enum(user.role, UserRole, "role"),
        })


# ---------------------------------------------------------------------------
# Invite
# ---------------------------------------------------------------------------


class InviteRepository(ABC):
    """Persistence contract for :class:`Invite`.

    ``mark_expired_bulk`` and ``delete_expired`` are single statements and
    safe to run concurrently with normal traffic.
    """

    @abstractmethod
    def create(self, invite: Invite) -> Invite:
        """Insert *invite*; ``ConflictError`` on a token collision."""

    @abstractmethod
    def get_by_id(self, invite_id: UUIDLike) -> Invite:
        """Invite by id, any status."""

    @abstractmethod
    def get_by_token(self, token: str) -> Invite:
        """Invite by its opaque token, any status."""

    @abstractmethod
    def get_by_family(self, family_id: UUIDLike) -> list[Invite]:
        """All invites of a family, newest first."""

    @abstractmethod
    def get_pending_by_email(self, email: str) -> list[Invite]:
        """Pending invites addressed to *email*, newest first."""

    @abstractmethod
    def update(self, invite: Invite) -> Invite:
        """Persist status and acceptance fields."""

    @abstractmethod
    def delete(self, invite_id: UUIDLike) -> None:
        """Hard delete."""

    @abstractmethod
    def delete_expired(self, now: Optional[datetime] = None) -> int:
        """Delete pending invites past expiry; return how many went."""

    @abstractmethod
    def mark_expired_bulk(self, now: Optional[datetime] = None) -> int:
        """Move pending invites past expiry to ``expired``; return the count."""

    @staticmethod
    def _validated_token(token: str) -> str:
        if not isinstance(token, str) or not token.strip():
            raise InvalidInputError("token", "token cannot be empty")
        return token.strip()

    @classmethod
    def _validated_invite(cls, invite: Invite) -> Invite:
        if invite.expires_at is None:
            raise InvalidInputError("expires_at", "expiry is required")
        return invite.model_copy(update={
            "id": validate_uuid(invite.id, "invite_id"),
            "family_id": validate_uuid(invite.family_id, "family_id"),
            "created_by": validate_uuid(invite.created_by, "created_by"),
            "email": validate_email(invite.email),
            "role": validate_enum(invite.role, UserRole, "role"),
            "status": validate_enum(invite.status, InviteStatus, "status"),
            "token": cls._validated_token(invite.token),
            "accepted_by": _optional_uuid(invite.accepted_by, "accepted_by"),
            "expires_at": to_utc_millis(invite.expires_at),
        })


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------


class CategoryRepository(ABC):
    """Persistence contract for :class:`Category`.

    Categories are soft-deleted.  A category with active children cannot
    be deleted.  ``create`` and ``update`` run :meth:`_check_parent`, so a
    stored hierarchy never spans families or types and never loops.
    """

    @abstractmethod
    def create(self, category: Category) -> Category:
        """Insert *category*; ``ConflictError`` on a duplicate name."""

    @abstractmethod
    def get_by_id(self, category_id: UUIDLike) -> Category:
        """Active category by id."""

    @abstractmethod
    def get_by_family_id(self, family_id: UUIDLike) -> list[Category]:
        """Active categories of a family ordered by type then name."""

    @abstractmethod
    def get_by_type(
        self, family_id: UUIDLike, category_type: Union[CategoryType, str]
    ) -> list[Category]:
        """Active categories of a family with the given type."""

    @abstractmethod
    def get_children(self, parent_id: UUIDLike) -> list[Category]:
        """Active direct children of *parent_id*."""

    @abstractmethod
    def update(self, category: Category) -> Category:
        """Persist name, description, color, icon and parent."""

    @abstractmethod
    def delete(self, category_id: UUIDLike, family_id: UUIDLike) -> None:
        """Soft delete; ``ConflictError`` while active children exist."""

    @abstractmethod
    def _find_any(self, category_id: uuid.UUID) -> Optional[Category]:
        """Category by id, active or not; ``None`` when there is none."""

    def _check_parent(self, category: Category) -> None:
        """Validate ``category.parent_id`` against the stored hierarchy.

        The parent must exist, be active, and share the category's family
        and type.  Walking up from the parent must never reach *category*
        itself, which would close a cycle.
        """
        if category.parent_id is None:
            return
        parent = self._find_any(category.parent_id)
        if parent is None:
            raise InvalidInputError("parent_id", "parent category not found")
        if not parent.is_active:
            raise InvalidInputError("parent_id", "parent category is not active")
        if parent.family_id != category.family_id:
            raise InvalidInputError("parent_id", "parent category belongs to another family")
        if parent.type != category.type:
            raise InvalidInputError("parent_id", "parent category has a different type")

        seen = {category.id}
        ancestor: Optional[Category] = parent
        while ancestor is not None:
            if ancestor.id in seen:
                raise InvalidInputError("parent_id", "circular category reference")
            seen.add(ancestor.id)
            ancestor = (
                self._find_any(ancestor.parent_id) if ancestor.parent_id else None
            )

    @staticmethod
    def _validated_category(category: Category) -> Category:
        category_id = validate_uuid(category.id, "category_id")
        parent_id = _optional_uuid(category.parent_id, "parent_id")
        if parent_id == category_id:
            raise InvalidInputError("parent_id", "category cannot be its own parent")

        description = (category.description or "").strip()
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise InvalidInputError("description", "description too long")

        return category.model_copy(update={
            "id": category_id,
            "family_id": validate_uuid(category.family_id, "family_id"),
            "name": validate_name(category.name, "name"),
            "type": validate_enum(category.type, CategoryType, "type"),
            "description": description,
            "color": validate_color(category.color),
            "icon": validate_name(category.icon, "icon", max_length=_MAX_ICON_LENGTH),
            "parent_id": parent_id,
        })


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


class TransactionRepository(ABC):
    """Persistence contract for :class:`Transaction` (hard delete)."""

    @abstractmethod
    def create(self, transaction: Transaction) -> Transaction:
        """Insert *transaction*."""

    @abstractmethod
    def get_by_id(self, transaction_id: UUIDLike) -> Transaction:
        """Transaction by id."""

    @abstractmethod
    def get_by_filter(self, criteria: TransactionFilter) -> list[Transaction]:
        """Matching transactions, newest first, paginated."""

    @abstractmethod
    def get_by_family_id(
        self, family_id: UUIDLike, limit: Optional[int] = None, offset: int = 0
    ) -> list[Transaction]:
        """A family's transactions, newest first, paginated."""

    @abstractmethod
    def update(self, transaction: Transaction) -> Transaction:
        """Persist every mutable field."""

    @abstractmethod
    def delete(self, transaction_id: UUIDLike, family_id: UUIDLike) -> None:
        """Hard delete."""

    @abstractmethod
    def get_total_by_category(
        self, category_id: UUIDLike, transaction_type: Union[TransactionType, str]
    ) -> float:
        """Sum of all amounts for a category and type."""

    @abstractmethod
    def get_total_by_family_and_date_range(
        self,
        family_id: UUIDLike,
        start: datetime,
        end: datetime,
        transaction_type: Union[TransactionType, str],
    ) -> float:
        """Sum of amounts for a family and type with ``start <= date <= end``."""

    @abstractmethod
    def get_total_by_category_and_date_range(
        self,
        category_id: UUIDLike,
        start: datetime,
        end: datetime,
        transaction_type: Union[TransactionType, str],
    ) -> float:
        """Sum of amounts for a category and type with ``start <= date <= end``."""

    @abstractmethod
    def get_summary(
        self, family_id: UUIDLike, start: datetime, end: datetime
    ) -> TransactionSummary:
        """Counts and totals per type within the date range."""

    @staticmethod
    def _validated_transaction(transaction: Transaction) -> Transaction:
        if transaction.date is None:
            raise InvalidInputError("date", "date is required")

        tags: list[str] = []
        for tag in transaction.tags:
            cleaned = tag.strip() if isinstance(tag, str) else ""
            if not cleaned:
                continue
            if len(cleaned) > _MAX_TAG_LENGTH:
                raise InvalidInputError("tags", f"tag too long: {cleaned[:20]}...")
            if cleaned not in tags:
                tags.append(cleaned)

        return transaction.model_copy(update={
            "id": validate_uuid(transaction.id, "transaction_id"),
            "category_id": validate_uuid(transaction.category_id, "category_id"),
            "user_id": validate_uuid(transaction.user_id, "user_id"),
            "family_id": validate_uuid(transaction.family_id, "family_id"),
            "amount": validate_amount(transaction.amount),
            "type": validate_enum(transaction.type, TransactionType, "type"),
            "description": validate_description(transaction.description),
            "date": to_utc_millis(transaction.date),
            "tags": tags,
        })

    @staticmethod
    def _validated_filter(criteria: TransactionFilter) -> TransactionFilter:
        date_from = to_utc(criteria.date_from) if criteria.date_from else None
        date_to = to_utc(criteria.date_to) if criteria.date_to else None
        if date_from and date_to:
            validate_date_range(date_from, date_to, allow_equal=True)
        if (
            criteria.amount_from is not None
            and criteria.amount_to is not None
            and criteria.amount_from > criteria.amount_to
        ):
            raise InvalidInputError("amount_range", "amount_from exceeds amount_to")
        description = (criteria.description or "").strip() or None
        return criteria.model_copy(update={
            "family_id": validate_uuid(criteria.family_id, "family_id"),
            "user_id": _optional_uuid(criteria.user_id, "user_id"),
            "category_id": _optional_uuid(criteria.category_id, "category_id"),
            "type": (
                None if criteria.type is None
                else validate_enum(criteria.type, TransactionType, "type")
            ),
            "description": description,
            "date_from": date_from,
            "date_to": date_to,
            "tags": [tag.strip() for tag in criteria.tags if tag and tag.strip()],
        })


# ---------------------------------------------------------------------------
# Budget
# ---------------------------------------------------------------------------


class BudgetRepository(ABC):
    """Persistence contract for :class:`Budget` (soft delete)."""

    @abstractmethod
    def create(self, budget: Budget) -> Budget:
        """Insert *budget*; ``ConflictError`` on a duplicate name and range."""

    @abstractmethod
    def get_by_id(self, budget_id: UUIDLike) -> Budget:
        """Active budget by id."""

    @abstractmethod
    def get_by_family_id(self, family_id: UUIDLike) -> list[Budget]:
        """Active budgets of a family, newest start date first."""

    @abstractmethod
    def get_active_budgets(
        self, family_id: UUIDLike, at: Optional[datetime] = None
    ) -> list[Budget]:
        """Active budgets whose range contains *at* (default now)."""

    @abstractmethod
    def update(self, budget: Budget) -> Budget:
        """Persist name, amount, period, category and range."""

    @abstractmethod
    def delete(self, budget_id: UUIDLike, family_id: UUIDLike) -> None:
        """Soft delete."""

    @abstractmethod
    def update_spent_amount(self, budget_id: UUIDLike, spent: float) -> None:
        """Overwrite the cached ``spent`` figure."""

    @abstractmethod
    def find_affected_by_transaction(
        self, family_id: UUIDLike, category_id: Optional[UUIDLike], date: datetime
    ) -> list[uuid.UUID]:
        """Ids of active budgets whose range contains *date* and whose
        category is *category_id* or unset."""

    @staticmethod
    def _validated_spent(spent: float) -> float:
        if isinstance(spent, bool) or not isinstance(spent, (int, float)) or spent < 0:
            raise InvalidInputError("spent", "spent must be a non-negative number")
        return float(spent)

    @classmethod
    def _validated_budget(cls, budget: Budget) -> Budget:
        start, end = validate_date_range(
            to_utc_millis(budget.start_date), to_utc_millis(budget.end_date)
        )
        return budget.model_copy(update={
            "start_date": start,
            "end_date": end,
            "id": validate_uuid(budget.id, "budget_id"),
            "family_id": validate_uuid(budget.family_id, "family_id"),
            "category_id": _optional_uuid(budget.category_id, "category_id"),
            "name": validate_name(budget.name, "name"),
            "amount": validate_amount(budget.amount),
            "spent": cls._validated_spent(budget.spent),
            "period": validate_enum(budget.period, BudgetPeriod, "period"),
        })


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


class ReportRepository(ABC):
    """Persistence contract for :class:`Report` (hard delete)."""

    @abstractmethod
    def create(self, report: Report) -> Report:
        """Insert *report*, stamping ``generated_at`` when unset."""

    @abstractmethod
    def get_by_id(self, report_id: UUIDLike) -> Report:
        """Report by id."""

    @abstractmethod
    def get_by_family_id(self, family_id: UUIDLike) -> list[Report]:
        """A family's reports, newest first."""

    @abstractmethod
    def get_by_user_id(self, user_id: UUIDLike) -> list[Report]:
        """Reports generated by *user_id*, newest first."""

    @abstractmethod
    def delete(self, report_id: UUIDLike, family_id: UUIDLike) -> None:
        """Hard delete."""

    @staticmethod
    def _validated_report(report: Report) -> Report:
        start, end = validate_date_range(
            to_utc_millis(report.start_date), to_utc_millis(report.end_date), allow_equal=True
        )
        return report.model_copy(update={
            "start_date": start,
            "end_date": end,
            "id": validate_uuid(report.id, "report_id"),
            "family_id": validate_uuid(report.family_id, "family_id"),
            "user_id": validate_uuid(report.user_id, "user_id"),
            "name": validate_name(report.name, "name"),
            "type": validate_enum(report.type, ReportType, "type"),
            "period": validate_enum(report.period, ReportPeriod, "period"),
        })

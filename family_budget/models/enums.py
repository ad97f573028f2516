"""
Shared Enumerations for Family Budget Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents, so values read
back from any backend can be compared against plain strings.
"""

from __future__ import annotations
from enum import StrEnum


class UserRole(StrEnum):
    """Roles a family member can hold.

    Roles drive coarse permissions in the presentation layer; this data
    layer stores them but does not enforce them.
    """

    ADMIN = "admin"
    MEMBER = "member"
    CHILD = "child"


class InviteStatus(StrEnum):
    """Invite lifecycle states.

    ``PENDING`` is the only non-terminal state.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class CategoryType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class BudgetPeriod(StrEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class BudgetStatus(StrEnum):
    """Spending health of a budget, derived from the spent percentage."""

    SAFE = "safe"
    ON_TRACK = "on_track"
    WARNING = "warning"
    OVER_BUDGET = "over_budget"


class ReportType(StrEnum):
    EXPENSES = "expenses"
    INCOME = "income"
    BUDGET = "budget"
    CASH_FLOW = "cash_flow"
    CATEGORY_BREAKDOWN = "category_breakdown"


class ReportPeriod(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"

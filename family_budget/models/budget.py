"""
Budget Models.

A budget caps spending for a family (or one of its categories) over a
date range.  ``spent`` is maintained by the service layer from the
transactions that fall inside the range.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from family_budget.models.enums import BudgetPeriod, BudgetStatus

PERCENTAGE_BASE: float = 100.0
WARNING_THRESHOLD: float = 80.0
ON_TRACK_THRESHOLD: float = 50.0


class Budget(BaseModel):
    """Represents a spending limit over a period.

    ``category_id`` is ``None`` for a whole-family budget.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    amount: float
    spent: float = 0.0
    period: BudgetPeriod
    category_id: Optional[uuid.UUID] = None
    start_date: datetime
    end_date: datetime
    family_id: uuid.UUID
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def remaining(self) -> float:
        return self.amount - self.spent

    @property
    def spent_percentage(self) -> float:
        if self.amount == 0:
            return 0.0
        return (self.spent / self.amount) * PERCENTAGE_BASE

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.amount


def budget_status(spent: float, amount: float) -> BudgetStatus:
    """Classify spending: over 100% is over budget, over 80% a warning,
    over 50% on track, anything lower safe."""
    if spent > amount:
        return BudgetStatus.OVER_BUDGET
    percentage = (spent / amount) * PERCENTAGE_BASE if amount else 0.0
    if percentage > WARNING_THRESHOLD:
        return BudgetStatus.WARNING
    if percentage > ON_TRACK_THRESHOLD:
        return BudgetStatus.ON_TRACK
    return BudgetStatus.SAFE


class BudgetSummary(BaseModel):
    """A budget together with its freshly computed spending figures."""

    budget: Budget
    spent: float
    remaining: float
    percentage: float
    is_over_budget: bool
    status: BudgetStatus

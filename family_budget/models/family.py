"""
Family Model.

A family is the tenant unit: it owns users, categories, transactions,
budgets, reports and invites.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Family(BaseModel):
    """Represents a family (tenant)."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    currency: str = "USD"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FamilyStatistics(BaseModel):
    """Aggregate counts and sums across a family's dependent tables."""

    family_id: uuid.UUID
    active_users: int = 0
    active_categories: int = 0
    transaction_count: int = 0
    active_budgets: int = 0
    total_income: float = 0.0
    total_expenses: float = 0.0

    @property
    def balance(self) -> float:
        return self.total_income - self.total_expenses

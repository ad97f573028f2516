"""
Transaction Models.

A transaction is a single income or expense entry.  ``TransactionFilter``
describes list queries and ``TransactionSummary`` the aggregate returned
by ``get_summary``.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from family_budget.models.enums import TransactionType


class Transaction(BaseModel):
    """Represents an income or expense entry."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    amount: float
    type: TransactionType
    description: str
    category_id: uuid.UUID
    user_id: uuid.UUID
    family_id: uuid.UUID
    date: datetime
    tags: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def remove_tag(self, tag: str) -> None:
        self.tags = [existing for existing in self.tags if existing != tag]


class TransactionFilter(BaseModel):
    """Criteria for :meth:`TransactionRepository.get_by_filter`.

    Every criterion is optional except ``family_id``.  Results are ordered
    newest first (``date`` then ``created_at``, both descending).
    ``description`` is a case-insensitive substring match; ``tags``
    matches transactions carrying *any* of the given tags.
    """

    family_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    category_id: Optional[uuid.UUID] = None
    type: Optional[TransactionType] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    amount_from: Optional[float] = None
    amount_to: Optional[float] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    limit: Optional[int] = None
    offset: int = 0


class TransactionSummary(BaseModel):
    """Totals for a family over a date range."""

    total_count: int = 0
    income_count: int = 0
    expense_count: int = 0
    total_income: float = 0.0
    total_expenses: float = 0.0

    @property
    def balance(self) -> float:
        return self.total_income - self.total_expenses

    @property
    def avg_income(self) -> float:
        return self.total_income / self.income_count if self.income_count else 0.0

    @property
    def avg_expense(self) -> float:
        return self.total_expenses / self.expense_count if self.expense_count else 0.0

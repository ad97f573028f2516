"""
Report Models.

A report is a persisted snapshot of aggregates over a date range.  The
payload (``ReportData``) is stored as JSON text in SQLite, ``jsonb`` in
PostgreSQL and an embedded document in MongoDB.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from family_budget.models.enums import ReportPeriod, ReportType


class CategoryReportItem(BaseModel):
    category_id: uuid.UUID
    category_name: str
    amount: float
    percentage: float
    count: int


class DailyReportItem(BaseModel):
    date: datetime
    income: float = 0.0
    expenses: float = 0.0
    balance: float = 0.0


class TransactionReportItem(BaseModel):
    id: uuid.UUID
    amount: float
    description: str
    category: str
    date: datetime


class BudgetComparisonItem(BaseModel):
    budget_id: uuid.UUID
    budget_name: str
    planned: float
    actual: float
    difference: float
    percentage: float


class ReportData(BaseModel):
    """Aggregated figures captured when the report was generated."""

    total_income: float = 0.0
    total_expenses: float = 0.0
    net_income: float = 0.0
    category_breakdown: list[CategoryReportItem] = Field(default_factory=list)
    daily_breakdown: list[DailyReportItem] = Field(default_factory=list)
    top_expenses: list[TransactionReportItem] = Field(default_factory=list)
    budget_comparison: list[BudgetComparisonItem] = Field(default_factory=list)


class Report(BaseModel):
    """Represents a generated report."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    type: ReportType
    period: ReportPeriod
    family_id: uuid.UUID
    user_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    data: ReportData = Field(default_factory=ReportData)
    generated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

"""
Service Layer Data Transfer Objects.

Pydantic models for validated input/output at service boundaries.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from family_budget.models.enums import (
    BudgetPeriod,
    CategoryType,
    TransactionType,
    UserRole,
)

T = TypeVar("T")

__all__ = [
    "BudgetInput",
    "CategoryInput",
    "ServiceResult",
    "TransactionInput",
    "UserRegistration",
]


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------

class UserRegistration(BaseModel):
    """Validated input for registering a new family member."""

    email: str
    password: str = Field(repr=False)
    first_name: str
    last_name: str
    role: UserRole = UserRole.MEMBER
    family_id: uuid.UUID


class CategoryInput(BaseModel):
    name: str
    type: CategoryType
    family_id: uuid.UUID
    description: str = ""
    color: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None


class TransactionInput(BaseModel):
    amount: float
    type: TransactionType
    description: str
    category_id: uuid.UUID
    user_id: uuid.UUID
    family_id: uuid.UUID
    date: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)


class BudgetInput(BaseModel):
    name: str
    amount: float
    period: BudgetPeriod
    start_date: datetime
    end_date: datetime
    family_id: uuid.UUID
    category_id: Optional[uuid.UUID] = None


# ---------------------------------------------------------------------------
# Generic service models
# ---------------------------------------------------------------------------

class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    All service methods return this, providing a consistent contract
    for the HTTP / command layer.  ``status_code`` follows HTTP
    semantics: 200/201 on success, 400 for invalid input, 404 when the
    entity does not exist, 409 on a uniqueness conflict and 500 for
    anything unexpected.

    Generic over ``T`` so callers can annotate return types precisely
    (e.g. ``ServiceResult[Family]``).
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status_code: int = 200

"""
Category Model.

Categories classify transactions as income or expense and may nest one
level under a parent of the same family and type.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from family_budget.models.enums import CategoryType

DEFAULT_CATEGORY_COLOR: str = "#007BFF"
DEFAULT_CATEGORY_ICON: str = "default"


class Category(BaseModel):
    """Represents an income or expense category."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    type: CategoryType
    description: str = ""
    color: str = DEFAULT_CATEGORY_COLOR
    icon: str = DEFAULT_CATEGORY_ICON
    parent_id: Optional[uuid.UUID] = None
    family_id: uuid.UUID
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

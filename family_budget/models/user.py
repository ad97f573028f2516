"""
User Model.

Users belong to exactly one family.  Deleting a user only clears
``is_active``; the row stays so transactions and reports keep a valid
author reference.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from family_budget.models.enums import UserRole


class User(BaseModel):
    """Represents a family member account.

    ``email`` is stored lower-cased and is unique among active users.
    ``password_hash`` holds the PBKDF2 string produced by
    :func:`family_budget.utils.security.hash_password`.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    email: str
    password_hash: str = Field(repr=False)
    first_name: str
    last_name: str
    role: UserRole = UserRole.MEMBER
    family_id: uuid.UUID
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

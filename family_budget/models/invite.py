"""
Invite Model.

An invite offers an email address a place in a family under a given role.
It starts ``pending`` and moves to exactly one terminal state::

    pending ──accept()──────▶ accepted
        │
        ├────revoke()───────▶ revoked
        │
        └────mark_expired()─▶ expired   (normally via the bulk sweep)

Transitions out of a terminal state raise
:class:`~family_budget.errors.InvalidInputError`.  There is no optimistic
locking: when two writers race, the last persisted update wins.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field

from family_budget.errors import InvalidInputError
from family_budget.models.enums import InviteStatus, UserRole
from family_budget.utils.security import generate_invite_token
from family_budget.utils.time_helpers import to_utc, utc_now

DEFAULT_INVITE_VALIDITY_DAYS: int = 7


class Invite(BaseModel):
    """Represents an invitation to join a family."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    family_id: uuid.UUID
    created_by: uuid.UUID
    email: str
    role: UserRole = UserRole.MEMBER
    token: str = Field(default_factory=generate_invite_token)
    status: InviteStatus = InviteStatus.PENDING
    expires_at: datetime = Field(
        default_factory=lambda: utc_now() + timedelta(days=DEFAULT_INVITE_VALIDITY_DAYS)
    )
    accepted_at: Optional[datetime] = None
    accepted_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @classmethod
    def new(
        cls,
        family_id: uuid.UUID,
        created_by: uuid.UUID,
        email: str,
        role: UserRole,
        validity_days: int = DEFAULT_INVITE_VALIDITY_DAYS,
    ) -> "Invite":
        """Create a pending invite that expires *validity_days* from now."""
        now = utc_now()
        return cls(
            family_id=family_id,
            created_by=created_by,
            email=email,
            role=role,
            expires_at=now + timedelta(days=validity_days),
            created_at=now,
            updated_at=now,
        )

    # -- Queries ------------------------------------------------------------

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utc_now()) > to_utc(self.expires_at)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """``True`` while the invite is pending and not past ``expires_at``."""
        return self.status == InviteStatus.PENDING and not self.is_expired(now)

    # -- Transitions --------------------------------------------------------

    def _require_pending(self, action: str) -> None:
        if self.status != InviteStatus.PENDING:
            raise InvalidInputError(
                "status", f"cannot {action} an invite that is {self.status}"
            )

    def accept(self, user_id: uuid.UUID) -> None:
        self._require_pending("accept")
        now = utc_now()
        self.status = InviteStatus.ACCEPTED
        self.accepted_at = now
        self.accepted_by = user_id
        self.updated_at = now

    def revoke(self) -> None:
        self._require_pending("revoke")
        self.status = InviteStatus.REVOKED
        self.updated_at = utc_now()

    def mark_expired(self) -> None:
        self._require_pending("expire")
        self.status = InviteStatus.EXPIRED
        self.updated_at = utc_now()

"""
Invite Repository (PostgreSQL).

The bulk sweep is a single ``PATCH`` filtered on status and expiry; the
returned representation tells us how many rows changed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from family_budget.errors import NotFoundError
from family_budget.models.enums import InviteStatus
from family_budget.models.invite import Invite
from family_budget.repositories.interfaces import InviteRepository, UUIDLike
from family_budget.repositories.postgres.base import PostgresRepository, pg_timestamp
from family_budget.utils.time_helpers import utc_now
from family_budget.utils.validation import validate_email, validate_uuid


class PostgresInviteRepository(PostgresRepository, InviteRepository):
    """Data access layer for Invite entities in PostgreSQL."""

    TABLE = "invites"
    ENTITY = "invite"

    def create(self, invite: Invite) -> Invite:
        record = self._validated_invite(invite)
        now = utc_now()
        record = record.model_copy(update={
            "created_at": record.created_at or now,
            "updated_at": now,
        })
        response = self._execute(
            self._table().insert(record.model_dump(mode="json")),
            detail="token already in use",
        )
        row = self._first(response)
        self._logger.info("Invite created: %s", record.id)
        return Invite.model_validate(row) if row else record

    def get_by_id(self, invite_id: UUIDLike) -> Invite:
        iid = validate_uuid(invite_id, "invite_id")
        response = self._execute(
            self._table().select("*").eq("id", str(iid)).maybe_single()
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, iid)
        return Invite.model_validate(row)

    def get_by_token(self, token: str) -> Invite:
        valid_token = self._validated_token(token)
        response = self._execute(
            self._table().select("*").eq("token", valid_token).maybe_single()
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY)
        return Invite.model_validate(row)

    def get_by_family(self, family_id: UUIDLike) -> list[Invite]:
        fid = validate_uuid(family_id, "family_id")
        response = self._execute(
            self._table()
            .select("*")
            .eq("family_id", str(fid))
            .order("created_at", desc=True)
        )
        return [Invite.model_validate(row) for row in self._rows(response)]

    def get_pending_by_email(self, email: str) -> list[Invite]:
        normalized_email = validate_email(email)
        response = self._execute(
            self._table()
            .select("*")
            .eq("email", normalized_email)
            .eq("status", str(InviteStatus.PENDING))
            .order("created_at", desc=True)
        )
        return [Invite.model_validate(row) for row in self._rows(response)]

    def update(self, invite: Invite) -> Invite:
        record = self._validated_invite(invite)
        response = self._execute(
            self._table()
            .update({
                "status": str(record.status),
                "accepted_at": (
                    pg_timestamp(record.accepted_at) if record.accepted_at else None
                ),
                "accepted_by": str(record.accepted_by) if record.accepted_by else None,
                "updated_at": utc_now().isoformat(),
            })
            .eq("id", str(record.id))
        )
        row = self._first(response)
        if row is None:
            raise NotFoundError(self.ENTITY, record.id)
        return Invite.model_validate(row)

    def delete(self, invite_id: UUIDLike) -> None:
        iid = validate_uuid(invite_id, "invite_id")
        response = self._execute(self._table().delete().eq("id", str(iid)))
        if not self._rows(response):
            raise NotFoundError(self.ENTITY, iid)

    def delete_expired(self, now: Optional[datetime] = None) -> int:
        cutoff = pg_timestamp(now or utc_now())
        response = self._execute(
            self._table()
            .delete()
            .eq("status", str(InviteStatus.PENDING))
            .lt("expires_at", cutoff)
        )
        deleted = len(self._rows(response))
        self._logger.info("Deleted %d expired invites.", deleted)
        return deleted

    def mark_expired_bulk(self, now: Optional[datetime] = None) -> int:
        cutoff = pg_timestamp(now or utc_now())
        response = self._execute(
            self._table()
            .update({
                "status": str(InviteStatus.EXPIRED),
                "updated_at": utc_now().isoformat(),
            })
            .eq("status", str(InviteStatus.PENDING))
            .lt("expires_at", cutoff)
        )
        expired = len(self._rows(response))
        self._logger.info("Marked %d invites as expired.", expired)
        return expired

"""
Invite Repository (SQLite).
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Optional

from family_budget.errors import NotFoundError
from family_budget.models.enums import InviteStatus
from family_budget.models.invite import Invite
from family_budget.repositories.interfaces import InviteRepository, UUIDLike
from family_budget.repositories.sqlite.base import SQLiteRepository
from family_budget.utils.time_helpers import to_utc, utc_now
from family_budget.utils.validation import validate_email, validate_uuid


class SQLiteInviteRepository(SQLiteRepository, InviteRepository):
    """Data access layer for Invite entities in SQLite."""

    TABLE = "invites"
    ENTITY = "invite"

    @staticmethod
    def _to_model(row: sqlite3.Row) -> Invite:
        return Invite.model_validate(dict(row))

    def create(self, invite: Invite) -> Invite:
        record = self._validated_invite(invite)
        now = utc_now()
        record = record.model_copy(update={
            "created_at": record.created_at or now,
            "updated_at": now,
        })
        self._write(
            f"""
            INSERT INTO {self.TABLE} (
                id, family_id, created_by, email, role, token, status,
                expires_at, accepted_at, accepted_by, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id, record.family_id, record.created_by, record.email,
                record.role, record.token, record.status, record.expires_at,
                record.accepted_at, record.accepted_by,
                record.created_at, record.updated_at,
            ),
            detail="token already in use",
        )
        self._logger.info("Invite created: %s", record.id)
        return record

    def get_by_id(self, invite_id: UUIDLike) -> Invite:
        iid = validate_uuid(invite_id, "invite_id")
        row = self._fetch_one(f"SELECT * FROM {self.TABLE} WHERE id = ?", (iid,))
        if row is None:
            raise NotFoundError(self.ENTITY, iid)
        return self._to_model(row)

    def get_by_token(self, token: str) -> Invite:
        valid_token = self._validated_token(token)
        row = self._fetch_one(
            f"SELECT * FROM {self.TABLE} WHERE token = ?", (valid_token,)
        )
        if row is None:
            raise NotFoundError(self.ENTITY)
        return self._to_model(row)

    def get_by_family(self, family_id: UUIDLike) -> list[Invite]:
        fid = validate_uuid(family_id, "family_id")
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} WHERE family_id = ? ORDER BY created_at DESC",
            (fid,),
        )
        return [self._to_model(row) for row in rows]

    def get_pending_by_email(self, email: str) -> list[Invite]:
        normalized_email = validate_email(email)
        rows = self._fetch_all(
            f"SELECT * FROM {self.TABLE} WHERE email = ? AND status = ? "
            "ORDER BY created_at DESC",
            (normalized_email, InviteStatus.PENDING),
        )
        return [self._to_model(row) for row in rows]

    def update(self, invite: Invite) -> Invite:
        record = self._validated_invite(invite)
        record = record.model_copy(update={"updated_at": utc_now()})
        affected = self._write(
            f"""
            UPDATE {self.TABLE}
            SET status = ?, accepted_at = ?, accepted_by = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                record.status, record.accepted_at, record.accepted_by,
                record.updated_at, record.id,
            ),
        )
        if affected == 0:
            raise NotFoundError(self.ENTITY, record.id)
        return self.get_by_id(record.id)

    def delete(self, invite_id: UUIDLike) -> None:
        iid = validate_uuid(invite_id, "invite_id")
        affected = self._write(f"DELETE FROM {self.TABLE} WHERE id = ?", (iid,))
        if affected == 0:
            raise NotFoundError(self.ENTITY, iid)

    def delete_expired(self, now: Optional[datetime] = None) -> int:
        cutoff = to_utc(now) if now else utc_now()
        deleted = self._write(
            f"DELETE FROM {self.TABLE} WHERE status = ? AND expires_at < ?",
            (InviteStatus.PENDING, cutoff),
        )
        self._logger.info("Deleted %d expired invites.", deleted)
        return deleted

    def mark_expired_bulk(self, now: Optional[datetime] = None) -> int:
        cutoff = to_utc(now) if now else utc_now()
        expired = self._write(
            f"UPDATE {self.TABLE} SET status = ?, updated_at = ? "
            "WHERE status = ? AND expires_at < ?",
            (InviteStatus.EXPIRED, utc_now(), InviteStatus.PENDING, cutoff),
        )
        self._logger.info("Marked %d invites as expired.", expired)
        return expired

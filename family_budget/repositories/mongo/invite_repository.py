"""
Invite Repository (MongoDB).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import DESCENDING

from family_budget.errors import NotFoundError
from family_budget.models.enums import InviteStatus
from family_budget.models.invite import Invite
from family_budget.repositories.interfaces import InviteRepository, UUIDLike
from family_budget.repositories.mongo.base import MongoRepository, from_document
from family_budget.utils.time_helpers import to_utc, utc_now
from family_budget.utils.validation import validate_email, validate_uuid


class MongoInviteRepository(MongoRepository, InviteRepository):
    """Data access layer for Invite documents in MongoDB."""

    TABLE = "invites"
    ENTITY = "invite"

    def create(self, invite: Invite) -> Invite:
        record = self._validated_invite(invite)
        now = utc_now()
        record = record.model_copy(update={
            "created_at": record.created_at or now,
            "updated_at": now,
        })
        self._insert(record, detail="token already in use")
        self._logger.info("Invite created: %s", record.id)
        return record

    def get_by_id(self, invite_id: UUIDLike) -> Invite:
        iid = validate_uuid(invite_id, "invite_id")
        document = self.collection.find_one({"_id": str(iid)})
        if document is None:
            raise NotFoundError(self.ENTITY, iid)
        return from_document(Invite, document)

    def get_by_token(self, token: str) -> Invite:
        valid_token = self._validated_token(token)
        document = self.collection.find_one({"token": valid_token})
        if document is None:
            raise NotFoundError(self.ENTITY)
        return from_document(Invite, document)

    def get_by_family(self, family_id: UUIDLike) -> list[Invite]:
        fid = validate_uuid(family_id, "family_id")
        cursor = self.collection.find({"family_id": str(fid)}).sort("created_at", DESCENDING)
        return [from_document(Invite, document) for document in cursor]

    def get_pending_by_email(self, email: str) -> list[Invite]:
        normalized_email = validate_email(email)
        cursor = self.collection.find(
            {"email": normalized_email, "status": InviteStatus.PENDING.value}
        ).sort("created_at", DESCENDING)
        return [from_document(Invite, document) for document in cursor]

    def update(self, invite: Invite) -> Invite:
        record = self._validated_invite(invite)
        document = self._find_and_set(
            {"_id": str(record.id)},
            {
                "status": record.status,
                "accepted_at": record.accepted_at,
                "accepted_by": record.accepted_by,
                "updated_at": utc_now(),
            },
        )
        if document is None:
            raise NotFoundError(self.ENTITY, record.id)
        return from_document(Invite, document)

    def delete(self, invite_id: UUIDLike) -> None:
        iid = validate_uuid(invite_id, "invite_id")
        result = self.collection.delete_one({"_id": str(iid)})
        if result.deleted_count == 0:
            raise NotFoundError(self.ENTITY, iid)

    def delete_expired(self, now: Optional[datetime] = None) -> int:
        cutoff = to_utc(now) if now else utc_now()
        result = self.collection.delete_many(
            {"status": InviteStatus.PENDING.value, "expires_at": {"$lt": cutoff}}
        )
        self._logger.info("Deleted %d expired invites.", result.deleted_count)
        return result.deleted_count

    def mark_expired_bulk(self, now: Optional[datetime] = None) -> int:
        cutoff = to_utc(now) if now else utc_now()
        result = self.collection.update_many(
            {"status": InviteStatus.PENDING.value, "expires_at": {"$lt": cutoff}},
            {"$set": {"status": InviteStatus.EXPIRED.value, "updated_at": utc_now()}},
        )
        self._logger.info("Marked %d invites as expired.", result.modified_count)
        return result.modified_count

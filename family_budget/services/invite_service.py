"""
Invite Service.

Drives the invite lifecycle on top of :class:`~family_budget.models.invite.Invite`'s
state machine: an admin invites an email address, the recipient accepts
with the token (which creates their account), and a periodic sweep moves
stale pending invites to ``expired``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from family_budget.config import AppConfig
from family_budget.database import DatabaseManager
from family_budget.errors import InvalidInputError, NotFoundError
from family_budget.logger import StructuredLogger
from family_budget.models.enums import InviteStatus, UserRole
from family_budget.models.invite import Invite
from family_budget.models.service_models import ServiceResult, UserRegistration
from family_budget.models.user import User
from family_budget.repositories.interfaces import InviteRepository, UserRepository, UUIDLike
from family_budget.services.base_service import BaseService
from family_budget.services.user_service import UserService
from family_budget.utils.validation import validate_email, validate_enum


class InviteService(BaseService):
    """Service layer for family invitations."""

    def __init__(
        self,
        repo: InviteRepository,
        user_repo: UserRepository,
        user_service: UserService,
        config: AppConfig,
        db: DatabaseManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo
        self._user_repo = user_repo
        self._user_service = user_service
        self._config = config

    def create_invite(
        self,
        family_id: UUIDLike,
        created_by: UUIDLike,
        email: str,
        role: Union[UserRole, str] = UserRole.MEMBER,
    ) -> ServiceResult[Invite]:
        """
        Invite *email* to join *family_id* with *role*.

        The inviter must be an active ADMIN of the family (403 otherwise).
        Returns 409 when the address already belongs to an active user.
        """
        try:
            normalized_email = validate_email(email)
            validated_role = validate_enum(role, UserRole, "role")
            inviter = self._user_repo.get_by_id(created_by)
        except Exception as exc:
            return self._error_result(exc, "create invite")

        if inviter.role != UserRole.ADMIN or str(inviter.family_id) != str(family_id):
            return ServiceResult(
                success=False,
                error="Only family ADMIN users can send invites.",
                status_code=403,
            )

        try:
            self._user_repo.get_by_email(normalized_email)
        except NotFoundError:
            pass
        except Exception as exc:
            return self._error_result(exc, "create invite")
        else:
            return ServiceResult(
                success=False,
                error=f"A user with email {normalized_email} already exists.",
                status_code=409,
            )

        try:
            invite = self._repo.create(Invite.new(
                family_id=inviter.family_id,
                created_by=inviter.id,
                email=normalized_email,
                role=validated_role,
                validity_days=self._config.INVITE_VALIDITY_DAYS,
            ))
        except Exception as exc:
            return self._error_result(exc, "create invite")

        self._audit("CREATE", "Invite", invite.id, family_id=invite.family_id,
                    user_id=inviter.id,
                    details={"email": invite.email, "role": str(invite.role)})
        return ServiceResult(success=True, data=invite, status_code=201)

    def get_invite_by_token(self, token: str) -> ServiceResult[Invite]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_token(token))
        except Exception as exc:
            return self._error_result(exc, "fetch invite")

    def list_family_invites(self, family_id: UUIDLike) -> ServiceResult[list[Invite]]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_family(family_id))
        except Exception as exc:
            return self._error_result(exc, "list invites")

    def accept_invite(
        self,
        token: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> ServiceResult[User]:
        """
        Redeem *token*: create the invitee's account, then mark the invite
        accepted.

        An expired pending invite is persisted as ``expired`` and the call
        returns 400.
        """
        try:
            invite = self._repo.get_by_token(token)
            if invite.is_expired() and invite.status == InviteStatus.PENDING:
                invite.mark_expired()
                self._repo.update(invite)
                raise InvalidInputError("token", "invite has expired")
            if not invite.is_valid():
                raise InvalidInputError("token", f"invite is {invite.status}")
        except Exception as exc:
            return self._error_result(exc, "accept invite")

        registered = self._user_service.register_user(UserRegistration(
            email=invite.email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=invite.role,
            family_id=invite.family_id,
        ))
        if not registered.success or registered.data is None:
            return registered

        user = registered.data
        try:
            invite.accept(user.id)
            self._repo.update(invite)
        except Exception as exc:
            return self._error_result(exc, "accept invite")

        self._audit("ACCEPT", "Invite", invite.id, family_id=invite.family_id,
                    user_id=user.id)
        return ServiceResult(success=True, data=user, status_code=201)

    def revoke_invite(self, invite_id: UUIDLike, family_id: UUIDLike) -> ServiceResult[Invite]:
        try:
            invite = self._repo.get_by_id(invite_id)
            if str(invite.family_id) != str(family_id):
                raise NotFoundError("invite", invite_id)
            invite.revoke()
            updated = self._repo.update(invite)
        except Exception as exc:
            return self._error_result(exc, "revoke invite")

        self._audit("REVOKE", "Invite", updated.id, family_id=updated.family_id)
        return ServiceResult(success=True, data=updated)

    def sweep_expired(self, now: Optional[datetime] = None) -> ServiceResult[int]:
        """Mark every pending invite past its expiry as ``expired``.

        Returns the number of invites transitioned.  Running it twice in
        a row reports ``0`` the second time.
        """
        try:
            expired = self._repo.mark_expired_bulk(now)
        except Exception as exc:
            return self._error_result(exc, "sweep expired invites")
        return ServiceResult(success=True, data=expired)

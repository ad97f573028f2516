"""
User Management Service.

Handles family member accounts: registration, password authentication,
profile updates, role changes and deactivation.

Architectural notes:
    - Passwords are hashed with PBKDF2 before they reach the repository;
      the plaintext never leaves this module.
    - Only an active ADMIN of the same family may change another
      member's role.
"""

from __future__ import annotations

from typing import Optional, Union

from family_budget.config import AppConfig
from family_budget.database import DatabaseManager
from family_budget.errors import NotFoundError
from family_budget.logger import StructuredLogger
from family_budget.models.enums import UserRole
from family_budget.models.service_models import ServiceResult, UserRegistration
from family_budget.models.user import User
from family_budget.repositories.interfaces import UserRepository, UUIDLike
from family_budget.services.base_service import BaseService
from family_budget.utils.security import hash_password, verify_password
from family_budget.utils.validation import validate_enum


class UserService(BaseService):
    """Service layer for family member management."""

    def __init__(
        self,
        repo: UserRepository,
        config: AppConfig,
        db: DatabaseManager,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo
        self._config = config

    def register_user(self, registration: UserRegistration) -> ServiceResult[User]:
        """
        Create an active user in *registration.family_id*.

        Returns 400 for a weak password or malformed fields and 409 when
        another active user already owns the email address.
        """
        try:
            password_hash = hash_password(
                registration.password,
                iterations=self._config.PASSWORD_HASH_ITERATIONS,
            )
        except ValueError as exc:
            return ServiceResult(success=False, error=str(exc), status_code=400)

        try:
            user = self._repo.create(User(
                email=registration.email,
                password_hash=password_hash,
                first_name=registration.first_name,
                last_name=registration.last_name,
                role=registration.role,
                family_id=registration.family_id,
            ))
        except Exception as exc:
            return self._error_result(exc, "register user")

        self._audit("CREATE", "User", user.id, family_id=user.family_id,
                    details={"email": user.email, "role": str(user.role)})
        return ServiceResult(success=True, data=user, status_code=201)

    def authenticate(self, email: str, password: str) -> ServiceResult[User]:
        """
        Check *password* against the stored hash and record the login.

        Unknown addresses and wrong passwords produce the same 401 so the
        response does not reveal which accounts exist.
        """
        try:
            user = self._repo.get_by_email(email)
        except NotFoundError:
            user = None
        except Exception as exc:
            return self._error_result(exc, "authenticate user")

        if user is None or not verify_password(password, user.password_hash):
            self._logger.warning("Failed login attempt.")
            return ServiceResult(
                success=False, error="Invalid email or password.", status_code=401,
            )

        try:
            self._repo.update_last_login(user.id)
            user = self._repo.get_by_id(user.id)
        except Exception as exc:
            return self._error_result(exc, "record login")

        self._audit("LOGIN", "User", user.id, family_id=user.family_id, user_id=user.id)
        return ServiceResult(success=True, data=user)

    def get_user(self, user_id: UUIDLike) -> ServiceResult[User]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_id(user_id))
        except Exception as exc:
            return self._error_result(exc, "fetch user")

    def list_family_users(self, family_id: UUIDLike) -> ServiceResult[list[User]]:
        try:
            return ServiceResult(success=True, data=self._repo.get_by_family_id(family_id))
        except Exception as exc:
            return self._error_result(exc, "list users")

    def update_user(
        self,
        user_id: UUIDLike,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> ServiceResult[User]:
        """Update profile fields; ``None`` leaves a field untouched."""
        changes: dict[str, str] = {
            key: value
            for key, value in (
                ("email", email),
                ("first_name", first_name),
                ("last_name", last_name),
            )
            if value is not None
        }
        if password is not None:
            try:
                changes["password_hash"] = hash_password(
                    password, iterations=self._config.PASSWORD_HASH_ITERATIONS,
                )
            except ValueError as exc:
                return ServiceResult(success=False, error=str(exc), status_code=400)

        try:
            current = self._repo.get_by_id(user_id)
            updated = self._repo.update(current.model_copy(update=changes))
        except Exception as exc:
            return self._error_result(exc, "update user")

        audited = sorted("password" if key == "password_hash" else key for key in changes)
        self._audit("UPDATE", "User", updated.id, family_id=updated.family_id,
                    details={"fields": ",".join(audited)})
        return ServiceResult(success=True, data=updated)

    def change_role(
        self,
        user_id: UUIDLike,
        new_role: Union[UserRole, str],
        acting_user_id: UUIDLike,
    ) -> ServiceResult[User]:
        """
        Change a member's role.

        Args:
            user_id: Member whose role changes.
            new_role: One of ``admin``, ``member``, ``child``.
            acting_user_id: The admin performing the change.
        """
        try:
            validated_role = validate_enum(new_role, UserRole, "role")
            actor = self._repo.get_by_id(acting_user_id)
            target = self._repo.get_by_id(user_id)
        except Exception as exc:
            return self._error_result(exc, "change role")

        # --- RBAC: only an ADMIN of the same family can change roles ---
        if actor.role != UserRole.ADMIN or actor.family_id != target.family_id:
            return ServiceResult(
                success=False,
                error="Only family ADMIN users can change roles.",
                status_code=403,
            )

        old_role = str(target.role)
        try:
            updated = self._repo.update(target.model_copy(update={"role": validated_role}))
        except Exception as exc:
            return self._error_result(exc, "change role")

        self._audit(
            "UPDATE_ROLE", "User", updated.id,
            family_id=updated.family_id,
            user_id=actor.id,
            details={"old_role": old_role, "new_role": str(validated_role)},
        )
        return ServiceResult(success=True, data=updated)

    def deactivate_user(self, user_id: UUIDLike, family_id: UUIDLike) -> ServiceResult[None]:
        try:
            self._repo.delete(user_id, family_id)
        except Exception as exc:
            return self._error_result(exc, "deactivate user")

        self._audit("DEACTIVATE", "User", user_id, family_id=family_id)
        return ServiceResult(success=True)

"""
Base Service Class.

Minimal base class standardizing the logger pattern for all services.
Services extend this and add their own repository dependencies via __init__.
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from family_budget.database import DatabaseManager
from family_budget.errors import RepositoryError
from family_budget.logger import StructuredLogger
from family_budget.models.service_models import ServiceResult
from family_budget.utils.audit import DetailValue, log_audit_event


class BaseService:
    """Base class for all service classes. Provides a logger and the
    database handle used for audit persistence and batch writes."""

    def __init__(self, logger: StructuredLogger, db: DatabaseManager) -> None:
        self._logger: StructuredLogger = logger
        self._db: DatabaseManager = db

    def _error_result(self, exc: Exception, action: str) -> ServiceResult:
        """Translate an exception raised while performing *action*.

        Taxonomy errors keep their status code (400/404/409) and pydantic
        validation failures count as 400.  Anything else is logged with
        its traceback and reported as a 500.
        """
        if isinstance(exc, ValidationError):
            self._logger.warning("Could not %s: %s", action, exc)
            return ServiceResult(success=False, error=str(exc), status_code=400)
        if isinstance(exc, RepositoryError) and exc.status_code < 500:
            self._logger.warning("Could not %s: %s", action, exc.message)
            return ServiceResult(
                success=False, error=exc.message, status_code=exc.status_code,
            )
        self._logger.exception("Failed to %s: %s", action, exc)
        return ServiceResult(
            success=False,
            error=f"Database error while trying to {action}: {exc}",
            status_code=500,
        )

    def _audit(
        self,
        action: str,
        entity_type: str,
        entity_id: object,
        family_id: object = None,
        user_id: object = None,
        details: Optional[dict[str, DetailValue]] = None,
    ) -> None:
        """Emit an audit event, persisting it when running on SQLite."""
        if self._db.backend != "sqlite":
            log_audit_event(
                logger=self._logger,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                family_id=family_id,
                user_id=user_id,
                details=details,
            )
            return
        with self._db.write_lock:
            log_audit_event(
                logger=self._logger,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                family_id=family_id,
                user_id=user_id,
                details=details,
                conn=self._db.sqlite,
            )

"""
Structured Audit Logging Utility.

Every state change in the service layer is logged as a structured JSON
object.  Provides a Pydantic-validated model and a single function for
consistent audit trail entries.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from family_budget.logger import StructuredLogger

__all__ = ["AuditEvent", "DetailValue", "log_audit_event", "persist_audit_event"]

# ---------------------------------------------------------------------------
# Scalar type permitted inside the ``details`` mapping.  Kept flat:
# nested structures should be modelled explicitly.
# ---------------------------------------------------------------------------
DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    """Schema-validated representation of a single audit trail entry."""

    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    family_id: str
    user_id: str = ""
    details: dict[str, DetailValue] = Field(default_factory=dict)


def _build_event(
    action: str,
    entity_type: str,
    entity_id: object,
    family_id: object,
    user_id: object,
    details: Optional[dict[str, DetailValue]],
) -> AuditEvent:
    return AuditEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        family_id=str(family_id) if family_id is not None else "",
        user_id=str(user_id) if user_id is not None else "",
        details=details or {},
    )


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: object,
    family_id: object = None,
    user_id: object = None,
    details: Optional[dict[str, DetailValue]] = None,
    conn: Optional[sqlite3.Connection] = None,
) -> None:
    """Log a structured JSON audit event, with optional SQLite persistence.

    Always emits a structured JSON log line via *logger*.  When *conn* is
    provided (SQLite backend), also writes the event to the ``audit_log``
    table.

    Args:
        logger: The logger instance to write to.
        action: What happened (e.g. ``"CREATE"``, ``"ACCEPT"``,
            ``"REVOKE"``, ``"DEACTIVATE"``).
        entity_type: Type of entity affected (e.g. ``"Invite"``).
        entity_id: Primary key of the affected entity.
        family_id: Tenant the entity belongs to.
        user_id: ID of the user who performed the action, when known.
        details: Optional additional context (e.g. old/new values).
        conn: Optional SQLite connection for queryable persistence.
    """
    event = _build_event(action, entity_type, entity_id, family_id, user_id, details)
    logger.info("AUDIT: %s", json.dumps(event.model_dump(), default=str))

    # Audit persistence must not break the calling operation.
    if conn is not None:
        try:
            persist_audit_event(conn, event)
        except sqlite3.Error as db_err:
            logger.warning("Failed to persist audit event to SQLite: %s", db_err)


def persist_audit_event(conn: sqlite3.Connection, event: AuditEvent) -> None:
    """Write a validated :class:`AuditEvent` to the ``audit_log`` table."""
    conn.execute(
        """
        INSERT INTO audit_log (timestamp, action, entity_type, entity_id,
                               family_id, user_id, details)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            event.timestamp,
            event.action,
            event.entity_type,
            event.entity_id,
            event.family_id,
            event.user_id,
            json.dumps(event.details, default=str),
        ),
    )
    conn.commit()

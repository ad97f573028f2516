"""Shared utility functions for the family budget data layer.

Convenience re-exports so consumers can import directly from
``family_budget.utils`` while full absolute imports (e.g.
``from family_budget.utils.validation import validate_email``) remain
supported.
"""

from family_budget.utils.audit import AuditEvent, log_audit_event
from family_budget.utils.security import (
    generate_invite_token,
    hash_password,
    verify_password,
)
from family_budget.utils.time_helpers import (
    from_db_timestamp,
    to_db_timestamp,
    utc_now,
)

__all__ = [
    "AuditEvent",
    "from_db_timestamp",
    "generate_invite_token",
    "hash_password",
    "log_audit_event",
    "to_db_timestamp",
    "utc_now",
    "verify_password",
]

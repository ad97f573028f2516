"""
Timestamp Helpers.

Every timestamp handled by the data layer is a timezone-aware UTC
``datetime``.  The SQLite backend stores them as fixed-width text so that
plain string comparison (``BETWEEN``, ``<``, ``ORDER BY``) orders them
chronologically.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

__all__ = [
    "from_db_timestamp",
    "to_db_timestamp",
    "to_utc",
    "to_utc_millis",
    "utc_now",
]

_DB_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Current time, truncated to milliseconds."""
    return to_utc_millis(datetime.now(timezone.utc))


def to_utc(value: datetime) -> datetime:
    """Attach UTC to naive values and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_utc_millis(value: datetime) -> datetime:
    """:func:`to_utc`, then drop sub-millisecond precision.

    BSON dates hold milliseconds only, so every stored timestamp goes
    through here to read back unchanged from any backend.
    """
    utc = to_utc(value)
    return utc.replace(microsecond=(utc.microsecond // 1000) * 1000)


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render *value* as ``YYYY-MM-DDTHH:MM:SS.ffffffZ``."""
    if value is None:
        return None
    return to_utc(value).strftime(_DB_FORMAT)


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse text written by :func:`to_db_timestamp` (or any ISO-8601 string)."""
    if value is None or value == "":
        return None
    try:
        parsed = datetime.strptime(value, _DB_FORMAT)
    except ValueError:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return to_utc(parsed)

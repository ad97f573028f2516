"""
Input Validation Helpers.

Pure functions that check primitive values before they reach a query.
Each function returns the sanitized value or raises
:class:`~family_budget.errors.InvalidInputError` naming the field and the
violation.  Repositories call these on every write and on every
identifier they receive; parameterized queries remain the primary guard.
"""

from __future__ import annotations

import math
import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, TypeVar, Union

from family_budget.errors import InvalidInputError

__all__ = [
    "DEFAULT_QUERY_LIMIT",
    "MAX_AMOUNT",
    "MAX_QUERY_LIMIT",
    "SUPPORTED_CURRENCIES",
    "sanitize_email",
    "sanitize_family_name",
    "sanitize_postgrest_value",
    "validate_amount",
    "validate_color",
    "validate_currency",
    "validate_date_range",
    "validate_description",
    "validate_email",
    "validate_enum",
    "validate_family_name",
    "validate_limit",
    "validate_name",
    "validate_uuid",
]

E = TypeVar("E", bound=Enum)

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

MAX_EMAIL_LENGTH: int = 254
MAX_AMOUNT: float = 999_999_999.99
MAX_NAME_LENGTH: int = 255
MAX_DESCRIPTION_LENGTH: int = 1000
CURRENCY_CODE_LENGTH: int = 3
DEFAULT_QUERY_LIMIT: int = 50
MAX_QUERY_LIMIT: int = 1000

SUPPORTED_CURRENCIES: frozenset[str] = frozenset({
    "USD", "EUR", "GBP", "JPY", "RUB",
    "CNY", "CAD", "AUD", "CHF", "SEK",
    "NOK", "DKK", "PLN", "CZK", "HUF",
})

# ---------------------------------------------------------------------------
# Pre-compiled patterns
# ---------------------------------------------------------------------------

_RE_EMAIL = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_RE_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_RE_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")
# Anything outside this allowlist can change the meaning of a PostgREST
# filter string (operators, grouping, wildcards, casts).
_RE_POSTGREST_UNSAFE = re.compile(r"[^a-zA-Z0-9\s\-\u00C0-\u024F]")

# Compared against the lower-cased address.
_SUSPICIOUS_EMAIL_FRAGMENTS: tuple[str, ...] = (
    "'", "--", "/*", "*/", "xp_", "sp_",
    "drop", "select", "insert", "update", "delete",
)


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


def validate_uuid(value: Union[uuid.UUID, str, None], field: str = "id") -> uuid.UUID:
    """Return *value* as a :class:`uuid.UUID`, rejecting the nil UUID.

    Accepts either a ``UUID`` instance or its canonical string form.
    """
    if value is None:
        raise InvalidInputError(field, "UUID cannot be empty")
    if isinstance(value, uuid.UUID):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = uuid.UUID(value.strip())
        except ValueError:
            raise InvalidInputError(field, "malformed UUID") from None
    else:
        raise InvalidInputError(field, "malformed UUID")

    if parsed.int == 0:
        raise InvalidInputError(field, "UUID cannot be nil")
    return parsed


# ---------------------------------------------------------------------------
# Email
# ---------------------------------------------------------------------------


def sanitize_email(email: str) -> str:
    """Trim whitespace and lower-case an email address."""
    return email.strip().lower()


def validate_email(email: str) -> str:
    """Validate and return the sanitized form of *email*.

    Rejects empty input, raw input longer than 254 characters, anything
    outside the strict address pattern, control characters, and the usual
    SQL comment / keyword fragments.
    """
    if not isinstance(email, str) or not email.strip():
        raise InvalidInputError("email", "email cannot be empty")

    if len(email) > MAX_EMAIL_LENGTH:
        raise InvalidInputError("email", "email too long")
    if _RE_CONTROL_CHARS.search(email):
        raise InvalidInputError("email", "email contains control characters")

    cleaned = sanitize_email(email)
    if not _RE_EMAIL.match(cleaned):
        raise InvalidInputError("email", "invalid email format")

    for fragment in _SUSPICIOUS_EMAIL_FRAGMENTS:
        if fragment in cleaned:
            raise InvalidInputError("email", "email contains suspicious characters")

    return cleaned


# ---------------------------------------------------------------------------
# Money
# ---------------------------------------------------------------------------


def validate_currency(code: str) -> str:
    """Return the upper-cased ISO 4217 *code* if it is on the whitelist."""
    if not isinstance(code, str) or not code.strip():
        raise InvalidInputError("currency", "currency cannot be empty")

    normalized = code.strip().upper()
    if len(normalized) != CURRENCY_CODE_LENGTH:
        raise InvalidInputError("currency", "currency must be exactly 3 characters")
    if not all("A" <= char <= "Z" for char in normalized):
        raise InvalidInputError("currency", "currency must contain only letters A-Z")
    if normalized not in SUPPORTED_CURRENCIES:
        raise InvalidInputError("currency", f"unsupported currency: {normalized}")
    return normalized


def validate_amount(amount: Union[int, float], field: str = "amount") -> float:
    """Accept ``0 < amount <= 999,999,999.99`` and return it as ``float``."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidInputError(field, "amount must be a number")
    value = float(amount)
    if math.isnan(value) or math.isinf(value):
        raise InvalidInputError(field, "amount must be finite")
    if value <= 0:
        raise InvalidInputError(field, "amount must be positive")
    if value > MAX_AMOUNT:
        raise InvalidInputError(field, "amount too large")
    return value


# ---------------------------------------------------------------------------
# Free text
# ---------------------------------------------------------------------------


def validate_name(name: str, field: str = "name", max_length: int = MAX_NAME_LENGTH) -> str:
    """Return the trimmed *name*; it must be non-empty and within *max_length*."""
    if not isinstance(name, str):
        raise InvalidInputError(field, f"{field} must be a string")
    trimmed = name.strip()
    if not trimmed:
        raise InvalidInputError(field, f"{field} cannot be empty")
    if len(trimmed) > max_length:
        raise InvalidInputError(field, f"{field} too long")
    return trimmed


def validate_description(text: str, field: str = "description") -> str:
    return validate_name(text, field=field, max_length=MAX_DESCRIPTION_LENGTH)


def sanitize_postgrest_value(value: str) -> str:
    """Strip characters unsafe for PostgREST ``ilike`` interpolation.

    Keeps letters, digits, whitespace, hyphens and accented Latin
    characters; wildcards, separators, parentheses, backslashes and colons
    are removed.
    """
    return _RE_POSTGREST_UNSAFE.sub("", value)


def sanitize_family_name(name: str) -> str:
    return name.strip()


def validate_family_name(name: str) -> str:
    if not isinstance(name, str):
        raise InvalidInputError("name", "family name must be a string")
    return validate_name(sanitize_family_name(name), field="name")


def validate_color(color: str) -> str:
    """Require a ``#RRGGBB`` hex color."""
    if not isinstance(color, str) or not _RE_COLOR.match(color.strip()):
        raise InvalidInputError("color", "color must be in #RRGGBB format")
    return color.strip()


# ---------------------------------------------------------------------------
# Enums, ranges, pagination
# ---------------------------------------------------------------------------


def validate_enum(value: Union[str, E], enum_cls: type[E], field: str) -> E:
    """Return the ``enum_cls`` member matching *value*."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(str(member.value) for member in enum_cls)
        raise InvalidInputError(
            field, f"unsupported value {value!r} (expected one of: {allowed})"
        ) from None


def validate_date_range(
    start: datetime,
    end: datetime,
    *,
    allow_equal: bool = False,
) -> tuple[datetime, datetime]:
    """Require *end* after *start* (or equal to it when ``allow_equal``)."""
    if start is None or end is None:
        raise InvalidInputError("date_range", "start and end dates are required")
    if end < start or (end == start and not allow_equal):
        raise InvalidInputError("date_range", "end date must be after start date")
    return start, end


def validate_limit(
    limit: Optional[int],
    offset: Optional[int] = 0,
    *,
    default: int = DEFAULT_QUERY_LIMIT,
    maximum: int = MAX_QUERY_LIMIT,
) -> tuple[int, int]:
    """Normalize pagination arguments.

    A missing or non-positive *limit* becomes *default*; anything above
    *maximum* is clamped.  A negative *offset* becomes ``0``.
    """
    resolved_limit = default if not limit or limit <= 0 else min(limit, maximum)
    resolved_offset = offset if offset and offset > 0 else 0
    return resolved_limit, resolved_offset

"""
Password Hashing and Token Helpers.

Passwords are hashed with PBKDF2-HMAC-SHA256 and a per-password random
salt.  The stored form is self-describing so the iteration count can be
raised later without invalidating existing hashes::

    pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>
"""

from __future__ import annotations

import hashlib
import hmac
import os
import secrets

__all__ = ["generate_invite_token", "hash_password", "verify_password"]

_ALGORITHM = "pbkdf2_sha256"
_SALT_BYTES = 32
_TOKEN_BYTES = 32
_MIN_PASSWORD_LENGTH = 8


def hash_password(password: str, iterations: int = 600_000) -> str:
    """Return a salted PBKDF2 hash of *password*.

    Raises:
        ValueError: If the password is shorter than 8 characters.
    """
    if len(password) < _MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {_MIN_PASSWORD_LENGTH} characters."
        )
    salt = os.urandom(_SALT_BYTES)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{_ALGORITHM}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Constant-time comparison of *password* against *stored_hash*.

    Returns ``False`` for malformed hashes instead of raising.
    """
    try:
        algorithm, iterations_text, salt_hex, digest_hex = stored_hash.split("$")
        iterations = int(iterations_text)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        return False
    if algorithm != _ALGORITHM:
        return False

    candidate = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, iterations
    )
    return hmac.compare_digest(candidate, expected)


def generate_invite_token() -> str:
    """64 hex characters drawn from 32 random bytes."""
    return secrets.token_hex(_TOKEN_BYTES)

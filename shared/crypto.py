"""
Cryptographic helpers — password hasher construction and the secret token
primitive.

Uses argon2 for passwords (via argon2-cffi) and salted SHA-256 for
high-entropy secrets (session nonces, verification slugs, reset slugs and
requester IP addresses).
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional

from argon2 import PasswordHasher

_SECRET_SCHEME = "sha256"
_SALT_BYTES = 16
_SECRET_BYTES = 32


def build_password_hasher(
    time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4
) -> PasswordHasher:
    """Return an argon2id hasher with the given cost parameters."""
    return PasswordHasher(
        time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism
    )


def _digest(salt: str, raw: str) -> str:
    return hashlib.sha256(f"{salt}{raw}".encode("utf-8")).hexdigest()


def hash_secret(raw: str) -> str:
    """Salt and hash *raw* for storage.

    Returns:
        ``sha256$<salt>$<digest>``; the salt is freshly drawn on every call,
        so hashing the same value twice yields two different strings.
    """
    salt = secrets.token_hex(_SALT_BYTES)
    return f"{_SECRET_SCHEME}${salt}${_digest(salt, raw)}"


def check_secret(raw: Optional[str], stored_hash: Optional[str]) -> bool:
    """Compare *raw* against a value produced by :func:`hash_secret`.

    The digest comparison runs in constant time. Missing inputs and malformed
    stored hashes never match.
    """
    if not raw or not stored_hash:
        return False
    parts = stored_hash.split("$")
    if len(parts) != 3 or parts[0] != _SECRET_SCHEME:
        return False
    _, salt, expected = parts
    return hmac.compare_digest(_digest(salt, raw), expected)


def issue_secret() -> tuple[str, str]:
    """Draw a fresh random secret.

    Returns:
        ``(raw, salted_hash)``. The raw value goes to the caller exactly once;
        only the hash is ever persisted.
    """
    raw = secrets.token_urlsafe(_SECRET_BYTES)
    return raw, hash_secret(raw)

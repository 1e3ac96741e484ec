"""
Credential manager — argon2id password hashing and verification.

argon2 draws a fresh salt for every hash and embeds it, together with the cost
parameters, in the encoded hash string; verification re-derives under that
salt and compares in constant time.
"""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from config import AuthSettings
from schemas.models.user import UserDoc
from shared.crypto import build_password_hasher


class CredentialManager:
    def __init__(self, settings: AuthSettings) -> None:
        self._hasher: PasswordHasher = build_password_hasher(
            time_cost=settings.password_time_cost,
            memory_cost=settings.password_memory_cost,
            parallelism=settings.password_parallelism,
        )
        # Verified against when no user matches, so unknown emails cost a hash too
        self._dummy_hash = self._hasher.hash("gatekeep-timing-equalizer")

    def hash_password(self, raw: str) -> str:
        return self._hasher.hash(raw)

    def set_password(self, user: UserDoc, raw: str) -> str:
        """Replace the user's stored hash with a fresh hash of *raw*."""
        user.password_hash = self.hash_password(raw)
        return user.password_hash

    def check_password(self, user: UserDoc, raw: str) -> bool:
        if not user.password_hash:
            return False
        return self._verify(user.password_hash, raw)

    def needs_rehash(self, user: UserDoc) -> bool:
        if not user.password_hash:
            return False
        try:
            return self._hasher.check_needs_rehash(user.password_hash)
        except InvalidHashError:
            return False

    def burn_time(self, raw: str) -> None:
        self._verify(self._dummy_hash, raw)

    def _verify(self, password_hash: str, raw: str) -> bool:
        try:
            return self._hasher.verify(password_hash, raw)
        except (VerificationError, InvalidHashError):
            return False

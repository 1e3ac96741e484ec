"""
Account verification state machine.

    unverified ──(slug and IP both match, before expiry)──▶ verified

The requester's IP and a random slug are stored as salted hashes; the raw slug
travels to the user by email. Both must match on the verifying request.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from config import AuthSettings
from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from shared.crypto import check_secret, hash_secret, issue_secret

# Stands in for an address that could not be resolved, so an empty IP still
# binds and matches
UNKNOWN_IP = "unknown"


class AccountVerification:
    def __init__(self, users: UserStore, settings: AuthSettings) -> None:
        self._users = users
        self.ttl = timedelta(seconds=settings.unverified_user_ttl_seconds)

    def generate(self, user: UserDoc, ip: str, now: datetime) -> str:
        """Arm *user* for verification and return the raw slug."""
        slug, slug_hash = issue_secret()
        user.verified = False
        user.verification_slug_hash = slug_hash
        user.verification_ip_hash = hash_secret(ip or UNKNOWN_IP)
        user.verification_expiry = now + self.ttl
        return slug

    @staticmethod
    def check(user: UserDoc, slug: str, ip: str) -> bool:
        # Both comparisons always run
        slug_ok = check_secret(slug, user.verification_slug_hash)
        ip_ok = check_secret(ip or UNKNOWN_IP, user.verification_ip_hash)
        return slug_ok and ip_ok

    async def complete(self, user_id: str) -> bool:
        """Mark the user verified. False if it was already verified or is gone."""
        return await self._users.mark_verified(user_id)

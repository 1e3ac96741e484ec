"""
Session nonce registry.

Each device a user is logged in on is represented by one salted-hash nonce in
``UserDoc.session_nonces``. The raw nonce only ever lives inside the bearer
token handed to that device.
"""

from __future__ import annotations

from typing import Optional

from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from shared.crypto import check_secret, issue_secret
from shared.logging import get_logger

log = get_logger(__name__)


class SessionRegistry:
    def __init__(self, users: UserStore) -> None:
        self._users = users

    async def generate_nonce(self, user_id: str) -> Optional[str]:
        """Register a new session and return its raw nonce.

        The hash is appended with an atomic push, so concurrent logins for the
        same user all survive. Returns None if the user no longer exists.
        """
        nonce, nonce_hash = issue_secret()
        if not await self._users.push_session_nonce(user_id, nonce_hash):
            return None
        log.info("session_created", user_id=user_id)
        return nonce

    @staticmethod
    def find_index(user: UserDoc, nonce: str) -> Optional[int]:
        for index, nonce_hash in enumerate(user.session_nonces):
            if check_secret(nonce, nonce_hash):
                return index
        return None

    async def remove(self, user_id: str, nonce: str) -> bool:
        """Revoke the one session matching *nonce*."""
        user = await self._users.find_by_id(user_id)
        if user is None:
            return False
        index = self.find_index(user, nonce)
        if index is None:
            return False
        removed = await self._users.pull_session_nonce(
            user_id, user.session_nonces[index]
        )
        if removed:
            log.info("session_revoked", user_id=user_id)
        return removed

    async def remove_all(self, user_id: str) -> bool:
        cleared = await self._users.clear_session_nonces(user_id)
        if cleared:
            log.info("all_sessions_revoked", user_id=user_id)
        return cleared

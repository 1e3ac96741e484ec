"""
Login throttle — per-account failed-attempt counter with a rolling window.

The predicates are pure functions of the user's throttle fields and ``now``.
Recording a failure is two conditional updates: restart the count at one if
the window has lapsed, otherwise increment it. Either way the window is
pushed out to ``now + lockout``. A successful login leaves the counter alone;
only a lapsed window resets it.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from config import AuthSettings
from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from shared.logging import get_logger

log = get_logger(__name__)


class LoginThrottle:
    def __init__(self, users: UserStore, settings: AuthSettings) -> None:
        self._users = users
        self.max_attempts = settings.max_login_attempts
        self.window = timedelta(seconds=settings.login_lockout_seconds)

    def exceeded_attempts(self, user: UserDoc, now: datetime) -> bool:
        return (
            now < user.login_attempts_expiry
            and user.login_attempts >= self.max_attempts
        )

    def attempts_window_expired(self, user: UserDoc, now: datetime) -> bool:
        return now >= user.login_attempts_expiry

    async def record_failure(self, user: UserDoc, now: datetime) -> Optional[UserDoc]:
        """Count a failed password check.

        Returns the updated user, or None if the user no longer exists.
        """
        expiry = now + self.window
        updated = await self._users.restart_login_attempts(user.user_id, now, expiry)
        if updated is None:
            updated = await self._users.increment_login_attempts(
                user.user_id, now, expiry
            )
        if updated is None:
            log.info("login_failure_user_vanished", user_id=user.user_id)
            return None

        if updated.login_attempts >= self.max_attempts:
            log.warning(
                "login_locked_out",
                user_id=updated.user_id,
                attempts=updated.login_attempts,
            )
        return updated

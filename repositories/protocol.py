"""Store protocols — services depend on these, not on the Mongo implementation.

Every mutating method is a single conditional or atomic store operation; none
of them is a load-then-save. Reads that take ``now`` ignore records whose
expiry has passed even if the TTL reaper has not removed them yet.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from schemas.models.token import PasswordResetTokenDoc
from schemas.models.user import UserDoc


class UserStore(Protocol):
    async def find_by_id(self, user_id: str) -> Optional[UserDoc]: ...

    async def find_by_email(self, email: str) -> Optional[UserDoc]: ...

    async def find_verified_by_email(self, email: str) -> Optional[UserDoc]: ...

    async def find_unverified_by_email(
        self, email: str, now: datetime
    ) -> Optional[UserDoc]: ...

    async def insert(self, user: UserDoc) -> UserDoc: ...

    async def delete(self, user_id: str) -> bool: ...

    async def delete_expired_unverified(self, email: str, now: datetime) -> bool: ...

    async def mark_verified(self, user_id: str) -> bool: ...

    async def update_password(self, user_id: str, password_hash: str) -> bool: ...

    async def restart_login_attempts(
        self, user_id: str, now: datetime, expiry: datetime
    ) -> Optional[UserDoc]: ...

    async def increment_login_attempts(
        self, user_id: str, now: datetime, expiry: datetime
    ) -> Optional[UserDoc]: ...

    async def push_session_nonce(self, user_id: str, nonce_hash: str) -> bool: ...

    async def pull_session_nonce(self, user_id: str, nonce_hash: str) -> bool: ...

    async def clear_session_nonces(self, user_id: str) -> bool: ...


class ResetTokenStore(Protocol):
    async def find_live(
        self,
        email: str,
        now: datetime,
        *,
        authenticated: Optional[bool] = None,
        spent: Optional[bool] = None,
    ) -> Optional[PasswordResetTokenDoc]: ...

    async def insert(self, token: PasswordResetTokenDoc) -> PasswordResetTokenDoc: ...

    async def delete(self, token_id: str) -> bool: ...

    async def delete_expired(self, email: str, now: datetime) -> bool: ...

    async def mark_authenticated(
        self, token_id: str, slug_hash: str, now: datetime
    ) -> Optional[PasswordResetTokenDoc]: ...

    async def mark_spent(
        self, email: str, now: datetime
    ) -> Optional[PasswordResetTokenDoc]: ...

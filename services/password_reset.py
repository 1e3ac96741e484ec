"""
Password reset state machine.

    Requested ──authenticate(slug)──▶ Authenticated ──change_password──▶ Spent

One token per email address at a time. A token in the wrong state is reported
exactly like a missing one, so callers cannot probe where a reset stands.
"""

from __future__ import annotations

from datetime import timedelta

from pymongo.errors import DuplicateKeyError

from config import AuthSettings
from errors import (
    AuthenticationError,
    AuthFailure,
    ConflictError,
    EmailDeliveryError,
    NotFoundError,
    ValidationError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.protocol import ResetTokenStore, UserStore
from schemas.models.token import PasswordResetTokenDoc
from services.credentials import CredentialManager
from services.outcome import Outcome
from shared.crypto import check_secret, issue_secret
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger
from shared.validators import normalize_email, validate_email, validate_password_pair

log = get_logger(__name__)

AUTHENTICATION_FAILED = "Authentication unsuccessful."
CHANGE_FAILED = "Password change unsuccessful."


class PasswordResetService:
    def __init__(
        self,
        users: UserStore,
        tokens: ResetTokenStore,
        credentials: CredentialManager,
        email: EmailProvider,
        settings: AuthSettings,
        clock: Clock = utcnow,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._credentials = credentials
        self._email = email
        self._ttl = timedelta(seconds=settings.reset_token_ttl_seconds)
        self._clock = clock

    async def request(self, email: str) -> Outcome[str]:
        """Open a reset for *email* and mail the authentication link."""
        errors = validate_email(email)
        if errors:
            return Outcome.failure(
                ValidationError(
                    "There were issues validating your input.", details=errors
                )
            )

        email = normalize_email(email)
        now = self._clock()
        user = await self._users.find_verified_by_email(email)
        if user is None:
            return Outcome.failure(
                NotFoundError("No user exists with this email address.")
            )

        await self._tokens.delete_expired(email, now)
        if await self._tokens.find_live(email, now) is not None:
            return Outcome.failure(
                ConflictError("A password token has recently been issued.")
            )

        slug, slug_hash = issue_secret()
        token = PasswordResetTokenDoc(
            email=email, auth_slug_hash=slug_hash, expires_at=now + self._ttl
        )
        try:
            token = await self._tokens.insert(token)
        except DuplicateKeyError:
            return Outcome.failure(
                ConflictError("A password token has recently been issued.")
            )

        try:
            sent = await self._email.send_password_reset_email(email, slug)
        except Exception:
            await self._tokens.delete(str(token.id))
            log.error("password_reset_email_failed", user_id=user.user_id, exc_info=True)
            raise
        if not sent:
            await self._tokens.delete(str(token.id))
            log.error("password_reset_email_failed", user_id=user.user_id)
            raise EmailDeliveryError("The password reset email could not be sent.")

        log.info("password_reset_requested", user_id=user.user_id)
        return Outcome.success(
            "Check your email for the password change verification link."
        )

    async def authenticate(self, email: str, slug: str) -> Outcome[str]:
        email = normalize_email(email)
        now = self._clock()
        if await self._users.find_verified_by_email(email) is None:
            return Outcome.failure(NotFoundError(AUTHENTICATION_FAILED))

        token = await self._tokens.find_live(
            email, now, authenticated=False, spent=False
        )
        if token is None:
            return Outcome.failure(NotFoundError(AUTHENTICATION_FAILED))

        if not check_secret(slug, token.auth_slug_hash):
            log.info("password_reset_slug_mismatch")
            return Outcome.failure(
                AuthenticationError(
                    AUTHENTICATION_FAILED, reason=AuthFailure.INVALID_SECRET
                )
            )

        updated = await self._tokens.mark_authenticated(
            str(token.id), token.auth_slug_hash, now
        )
        if updated is None:
            # Lost a race with another authentication, or expired meanwhile
            return Outcome.failure(NotFoundError(AUTHENTICATION_FAILED))

        log.info("password_reset_authenticated")
        return Outcome.success("Your password change request has been authenticated.")

    async def change_password(
        self, email: str, password: str, confirm: str
    ) -> Outcome[str]:
        errors = validate_password_pair(password, confirm)
        if errors:
            return Outcome.failure(
                ValidationError(
                    "There were issues validating your password.", details=errors
                )
            )

        email = normalize_email(email)
        now = self._clock()
        user = await self._users.find_verified_by_email(email)
        if user is None:
            return Outcome.failure(NotFoundError(CHANGE_FAILED))

        if await self._tokens.mark_spent(email, now) is None:
            return Outcome.failure(NotFoundError(CHANGE_FAILED))

        password_hash = self._credentials.hash_password(password)
        if not await self._users.update_password(user.user_id, password_hash):
            return Outcome.failure(NotFoundError(CHANGE_FAILED))

        log.info("password_changed", user_id=user.user_id)
        return Outcome.success("Your password was changed successfully.")

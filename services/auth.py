"""
Auth service — registration, verification, login and session management.

One coroutine per operation. Each returns an Outcome: the success payload, or
the AppError describing an expected failure. Store and email failures are
raised after any partial side effect has been rolled back.
"""

from __future__ import annotations

from typing import Optional

from pymongo.errors import DuplicateKeyError

from errors import (
    AuthenticationError,
    AuthFailure,
    ConflictError,
    EmailDeliveryError,
    NotFoundError,
    ValidationError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from services.credentials import CredentialManager
from services.outcome import Outcome
from services.sessions import SessionRegistry
from services.throttle import LoginThrottle
from services.tokens import LoginContext, TokenService
from services.verification import AccountVerification
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger, hash_ip
from shared.validators import normalize_email, validate_email, validate_password_pair

log = get_logger(__name__)

INCORRECT_LOGIN = "The username or password given is incorrect."
LOCKED_OUT = "Too many incorrect logins. Try again later."
EMAIL_TAKEN = "This email address is taken."
VERIFICATION_FAILED = "Verification failed."


class AuthService:
    def __init__(
        self,
        users: UserStore,
        credentials: CredentialManager,
        throttle: LoginThrottle,
        sessions: SessionRegistry,
        tokens: TokenService,
        verification: AccountVerification,
        email: EmailProvider,
        clock: Clock = utcnow,
    ) -> None:
        self._users = users
        self._credentials = credentials
        self._throttle = throttle
        self._sessions = sessions
        self._tokens = tokens
        self._verification = verification
        self._email = email
        self._clock = clock

    # ── Registration ─────────────────────────────────────────────────────────

    async def register(
        self, email: str, password: str, confirm: str, ip: str
    ) -> Outcome[str]:
        """Create an unverified account and email its verification link."""
        errors = validate_email(email) + validate_password_pair(password, confirm)
        if errors:
            return Outcome.failure(
                ValidationError(
                    "There were issues validating your user details.", details=errors
                )
            )

        email = normalize_email(email)
        now = self._clock()

        existing = await self._users.find_by_email(email)
        if existing is not None and not await self._users.delete_expired_unverified(
            email, now
        ):
            return Outcome.failure(ConflictError(EMAIL_TAKEN, field="email"))

        user = UserDoc(email=email, login_attempts_expiry=now, created_at=now)
        self._credentials.set_password(user, password)
        slug = self._verification.generate(user, ip, now)
        try:
            user = await self._users.insert(user)
        except DuplicateKeyError:
            return Outcome.failure(ConflictError(EMAIL_TAKEN, field="email"))

        try:
            sent = await self._email.send_verification_email(email, slug)
        except Exception:
            await self._users.delete(user.user_id)
            log.error("verification_email_failed", user_id=user.user_id, exc_info=True)
            raise
        if not sent:
            await self._users.delete(user.user_id)
            log.error("verification_email_failed", user_id=user.user_id)
            raise EmailDeliveryError("The verification email could not be sent.")

        log.info("user_registered", user_id=user.user_id, ip_hash=hash_ip(ip))
        return Outcome.success("Check your email for an account verification link!")

    async def verify(self, email: str, slug: str, ip: str) -> Outcome[str]:
        user = await self._users.find_unverified_by_email(email, self._clock())
        if user is None:
            return Outcome.failure(NotFoundError(VERIFICATION_FAILED))

        if not self._verification.check(user, slug, ip):
            log.info("verification_mismatch", user_id=user.user_id, ip_hash=hash_ip(ip))
            return Outcome.failure(
                AuthenticationError(
                    VERIFICATION_FAILED, reason=AuthFailure.INVALID_SECRET
                )
            )

        if not await self._verification.complete(user.user_id):
            return Outcome.failure(NotFoundError(VERIFICATION_FAILED))

        log.info("user_verified", user_id=user.user_id)
        return Outcome.success("Your account has been verified. You may now log in.")

    # ── Login / logout ───────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> Outcome[str]:
        """Check credentials and return a signed bearer token."""
        now = self._clock()
        user = await self._users.find_verified_by_email(email or "")
        if user is None:
            self._credentials.burn_time(password or "")
            return self._incorrect()

        # Locked accounts are rejected before the password is looked at. The
        # count read here can be stale under concurrent attempts.
        if self._throttle.exceeded_attempts(user, now):
            log.info("login_rejected_locked_out", user_id=user.user_id)
            return Outcome.failure(
                AuthenticationError(LOCKED_OUT, reason=AuthFailure.LOCKED_OUT)
            )

        if not self._credentials.check_password(user, password or ""):
            await self._throttle.record_failure(user, now)
            log.info("login_failed", user_id=user.user_id)
            return self._incorrect()

        if self._credentials.needs_rehash(user):
            await self._users.update_password(
                user.user_id, self._credentials.hash_password(password)
            )
            log.info("password_rehashed", user_id=user.user_id)

        token = await self._tokens.issue(user.user_id)
        if token is None:
            return self._incorrect()

        log.info("login_succeeded", user_id=user.user_id)
        return Outcome.success(token)

    async def authenticate(self, raw_token: Optional[str]) -> Outcome[LoginContext]:
        return await self._tokens.authenticate(raw_token)

    async def authenticate_header(self, header: Optional[str]) -> Outcome[LoginContext]:
        return await self._tokens.authenticate_header(header)

    async def logout(self, login: LoginContext) -> Outcome[str]:
        await self._sessions.remove(login.user_id, login.session_id)
        return Outcome.success("You are now logged out.")

    async def logout_all(self, login: LoginContext) -> Outcome[str]:
        await self._sessions.remove_all(login.user_id)
        return Outcome.success("You are now logged out.")

    async def delete_account(self, login: LoginContext, consent: object) -> Outcome[str]:
        if consent is not True:
            return Outcome.failure(
                ValidationError(
                    "Account deletion requires explicit consent.", field="consent"
                )
            )
        if not await self._users.delete(login.user_id):
            return Outcome.failure(NotFoundError("No such account exists."))

        log.info("user_deleted", user_id=login.user_id)
        return Outcome.success("Your account has been deleted.")

    @staticmethod
    def _incorrect() -> Outcome[str]:
        return Outcome.failure(
            AuthenticationError(
                INCORRECT_LOGIN, reason=AuthFailure.INCORRECT_CREDENTIALS
            )
        )

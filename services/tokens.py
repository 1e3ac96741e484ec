"""
Bearer token issuance and validation.

Tokens are JWTs (PyJWT) carrying three claims:

    sub  the user id
    exp  expiry, as a Unix timestamp
    jti  the raw session nonce

Only the nonce's salted hash is stored server-side, so a session can be
revoked by deleting its hash while the signed token stays syntactically valid.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import jwt

from config import AuthSettings, JWTSettings
from errors import AuthenticationError, AuthFailure, NotFoundError
from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from services.outcome import Outcome
from services.sessions import SessionRegistry
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger

log = get_logger(__name__)

_REQUIRED_CLAIMS = ["sub", "exp", "jti"]

NOT_LOGGED_IN = "You are not logged in."
LOGIN_EXPIRED = "Your login has expired. Please log in again."


@dataclass
class LoginContext:
    """What a validated bearer token resolves to."""

    user_id: str
    session_id: str
    user: UserDoc


def _not_logged_in() -> Outcome[LoginContext]:
    return Outcome.failure(
        AuthenticationError(NOT_LOGGED_IN, reason=AuthFailure.NOT_LOGGED_IN)
    )


def parse_bearer_header(header: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


class TokenService:
    def __init__(
        self,
        users: UserStore,
        sessions: SessionRegistry,
        jwt_settings: JWTSettings,
        auth_settings: AuthSettings,
        clock: Clock = utcnow,
    ) -> None:
        if not jwt_settings.jwt_secret:
            raise RuntimeError("JWT_SECRET must be set")
        self._users = users
        self._sessions = sessions
        self._secret = jwt_settings.jwt_secret
        self._algorithm = jwt_settings.jwt_algorithm
        self._ttl = timedelta(seconds=auth_settings.session_token_ttl_seconds)
        self._clock = clock

    async def issue(self, user_id: str) -> Optional[str]:
        """Open a new session for *user_id* and return its signed token.

        Returns None if the user disappeared before the session was stored.
        """
        nonce = await self._sessions.generate_nonce(user_id)
        if nonce is None:
            return None
        expires_at = self._clock() + self._ttl
        claims = {
            "sub": str(user_id),
            "exp": int(expires_at.timestamp()),
            "jti": nonce,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    async def authenticate(self, raw_token: Optional[str]) -> Outcome[LoginContext]:
        if not raw_token:
            return _not_logged_in()

        # Expiry is checked below against our own clock, after the
        # signature and the presence of every claim have been verified.
        try:
            claims = jwt.decode(
                raw_token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "require": _REQUIRED_CLAIMS},
            )
        except jwt.InvalidTokenError as e:
            log.info("token_rejected", reason=type(e).__name__)
            return _not_logged_in()

        user_id, expires_at, session_id = (claims[c] for c in ("sub", "exp", "jti"))
        if not isinstance(expires_at, (int, float)) or not user_id or not session_id:
            return _not_logged_in()

        if expires_at <= self._clock().timestamp():
            return await self._expire(str(user_id), str(session_id))

        user = await self._users.find_by_id(str(user_id))
        if user is None or not user.verified:
            return _not_logged_in()
        if self._sessions.find_index(user, str(session_id)) is None:
            return _not_logged_in()

        return Outcome.success(
            LoginContext(user_id=user.user_id, session_id=str(session_id), user=user)
        )

    async def authenticate_header(self, header: Optional[str]) -> Outcome[LoginContext]:
        return await self.authenticate(parse_bearer_header(header))

    async def _expire(self, user_id: str, session_id: str) -> Outcome[LoginContext]:
        user = await self._users.find_by_id(user_id)
        if user is None:
            log.warning("expired_token_for_missing_user", user_id=user_id)
            return Outcome.failure(NotFoundError("No such account exists."))

        await self._sessions.remove(user_id, session_id)
        log.info("login_expired", user_id=user_id)
        return Outcome.failure(
            AuthenticationError(LOGIN_EXPIRED, reason=AuthFailure.LOGIN_EXPIRED)
        )

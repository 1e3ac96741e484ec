"""
Unit tests for services/auth.py — AuthService.

Runs the fully wired engine (see the `engine` fixture) over mongomock with a
fake clock and a mocked email provider. The raw verification slug is read
back from the provider mock, the way a user would read it from their inbox.
"""

from __future__ import annotations

import httpx
import pytest

from errors import (
    AuthenticationError,
    AuthFailure,
    ConflictError,
    EmailDeliveryError,
    NotFoundError,
    ValidationError,
)
from schemas.models.user import UserDoc
from services.auth import EMAIL_TAKEN, INCORRECT_LOGIN, LOCKED_OUT
from shared.crypto import build_password_hasher

EMAIL = "alice@example.com"
PASSWORD = "Secret123!"
IP = "203.0.113.7"


@pytest.fixture
def auth(engine):
    return engine.auth_service


def _slug(email_provider) -> str:
    return email_provider.send_verification_email.call_args.args[1]


async def _registered(auth, email_provider, email=EMAIL, password=PASSWORD, ip=IP):
    outcome = await auth.register(email, password, password, ip)
    assert outcome.ok
    return _slug(email_provider)


async def _verified(auth, email_provider, email=EMAIL, password=PASSWORD):
    slug = await _registered(auth, email_provider, email, password)
    assert (await auth.verify(email, slug, IP)).ok


# ── register ─────────────────────────────────────────────────────────────────


class TestRegister:
    async def test_creates_unverified_user_and_mails_slug(
        self, auth, users, email_provider
    ):
        outcome = await auth.register(EMAIL, PASSWORD, PASSWORD, IP)

        assert outcome.value == "Check your email for an account verification link!"
        email_provider.send_verification_email.assert_awaited_once()
        assert email_provider.send_verification_email.call_args.args[0] == EMAIL

        user = await users.find_by_email(EMAIL)
        assert user.verified is False
        assert user.password_hash.startswith("$argon2id$")
        assert PASSWORD not in user.password_hash
        assert _slug(email_provider) not in user.verification_slug_hash
        assert IP not in user.verification_ip_hash

    async def test_email_is_normalized(self, auth, users, email_provider):
        await auth.register("  Alice@Example.COM ", PASSWORD, PASSWORD, IP)
        assert await users.find_by_email(EMAIL) is not None

    @pytest.mark.parametrize(
        "email, password, confirm, fields",
        [
            ("not-an-email", PASSWORD, PASSWORD, ["email"]),
            (EMAIL, "short", "short", ["password"]),
            (EMAIL, PASSWORD, "Secret123?", ["confirm"]),
            ("", "", "", ["email", "password"]),
        ],
        ids=["bad_email", "short_password", "mismatch", "empty"],
    )
    async def test_invalid_input(
        self, auth, email_provider, email, password, confirm, fields
    ):
        outcome = await auth.register(email, password, confirm, IP)

        assert isinstance(outcome.error, ValidationError)
        assert [d["field"] for d in outcome.error.details] == fields
        email_provider.send_verification_email.assert_not_awaited()

    async def test_taken_email_conflicts(self, auth, email_provider):
        await _verified(auth, email_provider)
        outcome = await auth.register(EMAIL, PASSWORD, PASSWORD, IP)

        assert isinstance(outcome.error, ConflictError)
        assert outcome.error.message == EMAIL_TAKEN
        assert outcome.error.field == "email"

    async def test_pending_registration_conflicts(self, auth, email_provider):
        await _registered(auth, email_provider)
        outcome = await auth.register(EMAIL, PASSWORD, PASSWORD, IP)
        assert isinstance(outcome.error, ConflictError)

    async def test_expired_registration_can_be_repeated(
        self, auth, email_provider, clock
    ):
        await _registered(auth, email_provider)
        clock.advance(seconds=900)

        assert (await auth.register(EMAIL, PASSWORD, PASSWORD, IP)).ok

    async def test_rejected_delivery_rolls_back(self, auth, users, email_provider):
        email_provider.send_verification_email.return_value = False

        with pytest.raises(EmailDeliveryError):
            await auth.register(EMAIL, PASSWORD, PASSWORD, IP)
        assert await users.find_by_email(EMAIL) is None

    async def test_transport_failure_rolls_back(self, auth, users, email_provider):
        email_provider.send_verification_email.side_effect = httpx.ConnectError("down")

        with pytest.raises(httpx.ConnectError):
            await auth.register(EMAIL, PASSWORD, PASSWORD, IP)
        assert await users.find_by_email(EMAIL) is None


# ── verify ───────────────────────────────────────────────────────────────────


class TestVerify:
    async def test_register_then_verify(self, auth, users, email_provider):
        slug = await _registered(auth, email_provider)

        outcome = await auth.verify(EMAIL, slug, IP)

        assert outcome.value == "Your account has been verified. You may now log in."
        user = await users.find_by_email(EMAIL)
        assert user.verified is True
        assert user.verification_slug_hash is None
        assert user.verification_ip_hash is None
        assert user.verification_expiry is None

    async def test_second_verify_is_not_found(self, auth, email_provider):
        slug = await _registered(auth, email_provider)
        await auth.verify(EMAIL, slug, IP)

        outcome = await auth.verify(EMAIL, slug, IP)
        assert isinstance(outcome.error, NotFoundError)

    async def test_wrong_slug(self, auth, users, email_provider):
        await _registered(auth, email_provider)

        outcome = await auth.verify(EMAIL, "not-the-slug", IP)

        assert outcome.error.reason == AuthFailure.INVALID_SECRET
        assert (await users.find_by_email(EMAIL)).verified is False

    async def test_wrong_ip(self, auth, email_provider):
        slug = await _registered(auth, email_provider)
        outcome = await auth.verify(EMAIL, slug, "198.51.100.1")
        assert isinstance(outcome.error, AuthenticationError)

    async def test_after_expiry_is_not_found(self, auth, email_provider, clock):
        slug = await _registered(auth, email_provider)
        clock.advance(seconds=900)

        outcome = await auth.verify(EMAIL, slug, IP)
        assert isinstance(outcome.error, NotFoundError)

    async def test_unknown_email(self, auth):
        outcome = await auth.verify("nobody@example.com", "slug", IP)
        assert isinstance(outcome.error, NotFoundError)

    async def test_unresolved_ip_still_verifies(self, auth, users, email_provider):
        slug = await _registered(auth, email_provider, ip="")

        assert (await auth.verify(EMAIL, slug, "")).ok
        assert (await users.find_by_email(EMAIL)).verified is True

    async def test_unresolved_ip_does_not_match_a_real_one(self, auth, email_provider):
        slug = await _registered(auth, email_provider, ip="")
        outcome = await auth.verify(EMAIL, slug, IP)
        assert isinstance(outcome.error, AuthenticationError)


# ── login ────────────────────────────────────────────────────────────────────


class TestLogin:
    async def test_returns_a_working_token(self, auth, email_provider):
        await _verified(auth, email_provider)

        outcome = await auth.login(EMAIL, PASSWORD)

        assert outcome.ok
        assert (await auth.authenticate(outcome.value)).ok

    async def test_unverified_user_cannot_log_in(self, auth, email_provider):
        await _registered(auth, email_provider)
        outcome = await auth.login(EMAIL, PASSWORD)
        assert outcome.error.reason == AuthFailure.INCORRECT_CREDENTIALS

    async def test_unknown_user_looks_like_wrong_password(self, auth, email_provider):
        await _verified(auth, email_provider)

        unknown = await auth.login("nobody@example.com", PASSWORD)
        wrong = await auth.login(EMAIL, "wrong-password")

        assert unknown.error.message == wrong.error.message == INCORRECT_LOGIN
        assert unknown.error.reason == wrong.error.reason

    async def test_lockout_rejects_even_the_right_password(
        self, auth, email_provider
    ):
        await _verified(auth, email_provider)
        for _ in range(3):
            assert (await auth.login(EMAIL, "wrong-password")).error.reason == (
                AuthFailure.INCORRECT_CREDENTIALS
            )

        outcome = await auth.login(EMAIL, PASSWORD)

        assert outcome.error.reason == AuthFailure.LOCKED_OUT
        assert outcome.error.message == LOCKED_OUT

    async def test_lockout_lifts_and_counter_restarts(
        self, auth, users, email_provider, clock
    ):
        await _verified(auth, email_provider)
        for _ in range(3):
            await auth.login(EMAIL, "wrong-password")

        clock.advance(seconds=300)
        assert (await auth.login(EMAIL, "wrong-password")).error.reason == (
            AuthFailure.INCORRECT_CREDENTIALS
        )
        assert (await users.find_by_email(EMAIL)).login_attempts == 1
        assert (await auth.login(EMAIL, PASSWORD)).ok

    async def test_success_does_not_reset_counter(self, auth, users, email_provider):
        await _verified(auth, email_provider)
        await auth.login(EMAIL, "wrong-password")

        assert (await auth.login(EMAIL, PASSWORD)).ok
        assert (await users.find_by_email(EMAIL)).login_attempts == 1

    async def test_outdated_hash_is_upgraded(self, auth, users):
        weak = build_password_hasher(time_cost=1, memory_cost=16, parallelism=1)
        user = await users.insert(
            UserDoc(email=EMAIL, verified=True, password_hash=weak.hash(PASSWORD))
        )

        assert (await auth.login(EMAIL, PASSWORD)).ok
        upgraded = await users.find_by_id(user.user_id)
        assert upgraded.password_hash != user.password_hash
        assert "m=8," in upgraded.password_hash


# ── logout / delete ──────────────────────────────────────────────────────────


class TestLogout:
    async def _login(self, auth, email_provider):
        await _verified(auth, email_provider)
        first = (await auth.login(EMAIL, PASSWORD)).value
        second = (await auth.login(EMAIL, PASSWORD)).value
        return first, second

    async def test_logout_revokes_one_device(self, auth, email_provider):
        first, second = await self._login(auth, email_provider)
        login = (await auth.authenticate(first)).value

        assert (await auth.logout(login)).value == "You are now logged out."
        assert (await auth.authenticate(first)).error.reason == AuthFailure.NOT_LOGGED_IN
        assert (await auth.authenticate(second)).ok

    async def test_logout_all_revokes_every_device(self, auth, email_provider):
        first, second = await self._login(auth, email_provider)
        login = (await auth.authenticate(first)).value

        assert (await auth.logout_all(login)).ok
        assert not (await auth.authenticate(first)).ok
        assert not (await auth.authenticate(second)).ok

    async def test_logout_twice_is_harmless(self, auth, email_provider):
        first, _ = await self._login(auth, email_provider)
        login = (await auth.authenticate(first)).value

        assert (await auth.logout(login)).ok
        assert (await auth.logout(login)).ok


class TestDeleteAccount:
    async def _login(self, auth, email_provider):
        await _verified(auth, email_provider)
        token = (await auth.login(EMAIL, PASSWORD)).value
        return (await auth.authenticate(token)).value

    @pytest.mark.parametrize("consent", [None, False, "true", 1])
    async def test_requires_literal_true(self, auth, users, email_provider, consent):
        login = await self._login(auth, email_provider)

        outcome = await auth.delete_account(login, consent)

        assert isinstance(outcome.error, ValidationError)
        assert outcome.error.field == "consent"
        assert await users.find_by_email(EMAIL) is not None

    async def test_deletes_user(self, auth, users, email_provider):
        login = await self._login(auth, email_provider)

        assert (await auth.delete_account(login, True)).ok
        assert await users.find_by_email(EMAIL) is None

    async def test_already_deleted(self, auth, email_provider):
        login = await self._login(auth, email_provider)
        await auth.delete_account(login, True)

        outcome = await auth.delete_account(login, True)
        assert isinstance(outcome.error, NotFoundError)

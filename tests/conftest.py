"""
Shared fixtures.

The repositories talk to pymongo's async API. Tests run them against
mongomock through a thin awaitable facade; every call yields to the event loop
first, so coroutines gathered in a test genuinely interleave.
"""

import asyncio
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import mongomock
import pytest

from app import install_services
from config import (
    AppSettings,
    AuthSettings,
    DatabaseSettings,
    EmailSettings,
    JWTSettings,
    LoggingSettings,
    SentrySettings,
)
from repositories.indexes import RESET_TOKENS_COLLECTION, USERS_COLLECTION, ensure_indexes
from repositories.reset_token_repository import ResetTokenRepository
from repositories.user_repository import UserRepository
from shared.datetime_utils import utcnow

TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


class AsyncCollection:
    """Awaitable facade over a mongomock collection."""

    def __init__(self, collection) -> None:
        self._collection = collection

    def __getattr__(self, name):
        attr = getattr(self._collection, name)
        if not callable(attr):
            return attr

        async def call(*args, **kwargs):
            await asyncio.sleep(0)
            return attr(*args, **kwargs)

        return call


class AsyncDatabase:
    def __init__(self, db) -> None:
        self._db = db

    def __getitem__(self, name) -> AsyncCollection:
        return AsyncCollection(self._db[name])


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self) -> None:
        self.now = utcnow().replace(microsecond=0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def raw_db():
    """Fresh database without indexes, for apps that build them on startup."""
    return AsyncDatabase(mongomock.MongoClient().db)


@pytest.fixture
async def db(raw_db):
    await ensure_indexes(raw_db)
    return raw_db


@pytest.fixture
def users(db):
    return UserRepository(db[USERS_COLLECTION])


@pytest.fixture
def reset_tokens(db):
    return ResetTokenRepository(db[RESET_TOKENS_COLLECTION])


@pytest.fixture
def auth_settings():
    # Cheapest argon2 parameters so the suite stays fast
    return AuthSettings(
        max_login_attempts=3,
        login_lockout_seconds=300,
        session_token_ttl_seconds=172800,
        unverified_user_ttl_seconds=900,
        reset_token_ttl_seconds=900,
        password_time_cost=1,
        password_memory_cost=8,
        password_parallelism=1,
    )


@pytest.fixture
def jwt_settings():
    return JWTSettings(jwt_secret=TEST_JWT_SECRET, jwt_algorithm="HS256")


@pytest.fixture
def app_settings(auth_settings, jwt_settings):
    return AppSettings(
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        jwt=jwt_settings,
        auth=auth_settings,
        email=EmailSettings(),
        logging=LoggingSettings(),
        sentry=SentrySettings(),
    )


@pytest.fixture
def email_provider():
    provider = AsyncMock()
    provider.send_verification_email.return_value = True
    provider.send_password_reset_email.return_value = True
    return provider


@pytest.fixture
def engine(db, app_settings, email_provider, clock):
    """Fully wired services over the mongomock database."""
    state = SimpleNamespace()
    install_services(state, db, app_settings, email_provider, clock=clock)
    return state


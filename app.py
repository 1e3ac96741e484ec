"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from repositories.indexes import (
    RESET_TOKENS_COLLECTION,
    USERS_COLLECTION,
    ensure_indexes,
)
from repositories.reset_token_repository import ResetTokenRepository
from repositories.user_repository import UserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from services.auth import AuthService
from services.credentials import CredentialManager
from services.password_reset import PasswordResetService
from services.sessions import SessionRegistry
from services.throttle import LoginThrottle
from services.tokens import TokenService
from services.verification import AccountVerification
from shared.datetime_utils import Clock, utcnow
from shared.logging import setup_logging


def install_services(
    state,
    db,
    settings: AppSettings,
    email_provider: EmailProvider,
    clock: Clock = utcnow,
) -> None:
    """Build the engine over *db* and attach its services to *state*."""
    users = UserRepository(db[USERS_COLLECTION])
    reset_tokens = ResetTokenRepository(db[RESET_TOKENS_COLLECTION])

    credentials = CredentialManager(settings.auth)
    sessions = SessionRegistry(users)
    tokens = TokenService(users, sessions, settings.jwt, settings.auth, clock=clock)

    state.settings = settings
    state.db = db
    state.auth_service = AuthService(
        users=users,
        credentials=credentials,
        throttle=LoginThrottle(users, settings.auth),
        sessions=sessions,
        tokens=tokens,
        verification=AccountVerification(users, settings.auth),
        email=email_provider,
        clock=clock,
    )
    state.password_reset_service = PasswordResetService(
        users=users,
        tokens=reset_tokens,
        credentials=credentials,
        email=email_provider,
        settings=settings.auth,
        clock=clock,
    )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging, settings.env)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri)
        app.state.mongo_client = mongo_client
        db = mongo_client[settings.db.db_name]
        await ensure_indexes(db)

        http_client = HttpClient(timeout=10.0)
        email_provider = ZeptoMailProvider(
            settings.email,
            http_client,
            app_url=settings.app_url,
            app_name=settings.app_name,
        )
        install_services(app.state, db, settings, email_provider)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await http_client.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)

    return app

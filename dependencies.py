"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services are built once in create_app()'s
lifespan and stored on app.state.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from services.auth import AuthService
from services.password_reset import PasswordResetService
from services.tokens import LoginContext


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_password_reset_service(request: Request) -> PasswordResetService:
    return request.app.state.password_reset_service


async def require_login(
    authorization: Optional[str] = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginContext:
    """Resolve the bearer token to a LoginContext or fail with 401."""
    outcome = await auth_service.authenticate_header(authorization)
    return outcome.unwrap()

"""
Authentication endpoints.

Handlers only translate HTTP into service calls: every expected failure
comes back as a failed Outcome, and unwrap() hands its AppError to the
global exception handler.

POST   /auth/register                      create an unverified account
GET    /auth/verify                        complete account verification
POST   /auth/login                         exchange credentials for a token
POST   /auth/logout                        revoke the current session
POST   /auth/logout-all                    revoke every session
DELETE /auth/account                       delete the logged-in account
POST   /auth/password-reset                request a password reset
GET    /auth/password-reset/authenticate   authenticate a reset request
POST   /auth/password-reset/change         set the new password
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from dependencies import get_auth_service, get_password_reset_service, require_login
from schemas.dto.requests.auth import (
    ChangePasswordRequest,
    DeleteAccountRequest,
    LoginRequest,
    RegisterRequest,
    RequestPasswordResetRequest,
)
from schemas.dto.responses.auth import LoginResponse
from schemas.dto.responses.common import MessageResponse
from services.auth import AuthService
from services.password_reset import PasswordResetService
from services.tokens import LoginContext
from shared.ip_utils import get_client_ip

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    outcome = await auth_service.register(
        body.email, body.password, body.confirm, get_client_ip(request)
    )
    return MessageResponse(message=outcome.unwrap())


@router.get("/verify", response_model=MessageResponse)
async def verify(
    request: Request,
    email: str = "",
    slug: str = "",
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    outcome = await auth_service.verify(email, slug, get_client_ip(request))
    return MessageResponse(message=outcome.unwrap())


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    outcome = await auth_service.login(body.email, body.password)
    return LoginResponse(token=outcome.unwrap())


@router.post("/logout", response_model=MessageResponse)
async def logout(
    login: LoginContext = Depends(require_login),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    outcome = await auth_service.logout(login)
    return MessageResponse(message=outcome.unwrap())


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    login: LoginContext = Depends(require_login),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    outcome = await auth_service.logout_all(login)
    return MessageResponse(message=outcome.unwrap())


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    body: DeleteAccountRequest,
    login: LoginContext = Depends(require_login),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    outcome = await auth_service.delete_account(login, body.consent)
    return MessageResponse(message=outcome.unwrap())


@router.post("/password-reset", response_model=MessageResponse, status_code=201)
async def request_password_reset(
    body: RequestPasswordResetRequest,
    reset_service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    outcome = await reset_service.request(body.email)
    return MessageResponse(message=outcome.unwrap())


@router.get("/password-reset/authenticate", response_model=MessageResponse)
async def authenticate_password_reset(
    email: str = "",
    slug: str = "",
    reset_service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    outcome = await reset_service.authenticate(email, slug)
    return MessageResponse(message=outcome.unwrap())


@router.post("/password-reset/change", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    email: str = "",
    reset_service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    outcome = await reset_service.change_password(email, body.password, body.confirm)
    return MessageResponse(message=outcome.unwrap())

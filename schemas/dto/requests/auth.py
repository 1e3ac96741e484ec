"""
Request DTOs for authentication endpoints.

LoginRequest                 — POST /auth/login
RegisterRequest              — POST /auth/register
DeleteAccountRequest         — DELETE /auth/account
RequestPasswordResetRequest  — POST /auth/password-reset
ChangePasswordRequest        — POST /auth/password-reset/change

Fields are deliberately loose; the services validate content and report
field errors through ValidationError.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = ""
    password: str = ""


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = ""
    password: str = ""
    confirm: str = ""


class DeleteAccountRequest(BaseModel):
    """Request body for DELETE /auth/account.

    ``consent`` must be the JSON literal ``true``; anything else is refused.
    """

    model_config = ConfigDict(populate_by_name=True)

    consent: Any = None


class RequestPasswordResetRequest(BaseModel):
    """Request body for POST /auth/password-reset."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = ""


class ChangePasswordRequest(BaseModel):
    """Request body for POST /auth/password-reset/change?email=..."""

    model_config = ConfigDict(populate_by_name=True)

    password: str = ""
    confirm: str = ""

"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. Services return expected failures
inside an Outcome instead of raising them; route handlers unwrap the outcome and
the global exception handler converts AppError subclasses to consistent JSON
responses.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class AuthFailure(str, Enum):
    """Why a credential check failed. Internal only; never serialized."""

    INCORRECT_CREDENTIALS = "incorrect_credentials"
    LOCKED_OUT = "locked_out"
    NOT_LOGGED_IN = "not_logged_in"
    LOGIN_EXPIRED = "login_expired"
    INVALID_SECRET = "invalid_secret"


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"

    def __init__(
        self,
        message: str,
        *,
        reason: AuthFailure = AuthFailure.INCORRECT_CREDENTIALS,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message, field=field, details=details)
        self.reason = reason


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class EmailDeliveryError(AppError):
    """Outbound email could not be delivered. Raised, never returned."""

    status_code = 502
    error_code = "email_delivery_failed"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )

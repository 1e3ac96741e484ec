"""Unit tests for the AppError hierarchy and its FastAPI handlers."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import (
    AppError,
    AuthenticationError,
    AuthFailure,
    ConflictError,
    EmailDeliveryError,
    NotFoundError,
    ValidationError,
    register_error_handlers,
)


@pytest.mark.parametrize(
    "cls, status, code",
    [
        (ValidationError, 400, "validation_error"),
        (AuthenticationError, 401, "authentication_error"),
        (NotFoundError, 404, "not_found"),
        (ConflictError, 409, "conflict"),
        (EmailDeliveryError, 502, "email_delivery_failed"),
    ],
    ids=["validation", "authentication", "not_found", "conflict", "email"],
)
def test_status_and_code(cls, status, code):
    e = cls("message")
    assert isinstance(e, AppError)
    assert e.status_code == status
    assert e.error_code == code
    assert e.message == "message"


class TestAuthenticationError:
    def test_default_reason(self):
        assert AuthenticationError("no").reason == AuthFailure.INCORRECT_CREDENTIALS

    def test_reason_is_not_serialized(self):
        e = AuthenticationError("Locked.", reason=AuthFailure.LOCKED_OUT)
        assert e.reason == AuthFailure.LOCKED_OUT
        assert e.to_dict() == {"error": "Locked.", "code": "authentication_error"}


class TestAppErrorToDict:
    def test_basic(self):
        e = NotFoundError("Verification failed.")
        assert e.to_dict() == {"error": "Verification failed.", "code": "not_found"}

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "email"}, "field", "email"),
            (
                {"details": [{"field": "password", "message": "too short"}]},
                "details",
                [{"field": "password", "message": "too short"}],
            ),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = ValidationError("invalid", **kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = NotFoundError("missing").to_dict()
        assert "field" not in d
        assert "details" not in d


class TestHandlers:
    def _client(self) -> TestClient:
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/conflict")
        async def conflict():
            raise ConflictError("This email address is taken.", field="email")

        @app.get("/boom")
        async def boom():
            raise RuntimeError("store down")

        return TestClient(app, raise_server_exceptions=False)

    def test_app_error_rendered(self):
        resp = self._client().get("/conflict")
        assert resp.status_code == 409
        assert resp.json() == {
            "error": "This email address is taken.",
            "code": "conflict",
            "field": "email",
        }

    def test_unexpected_error_is_500(self):
        resp = self._client().get("/boom")
        assert resp.status_code == 500
        assert resp.json()["code"] == "internal_error"

"""
Input validators — framework-agnostic, pure functions.

Each validator returns a list of ``{"field", "message"}`` dicts; an empty list
means the input is acceptable. Services pass a non-empty list to
``ValidationError(details=...)``.
"""

from __future__ import annotations

from typing import Optional

import validators as _validators

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


def normalize_email(email: Optional[str]) -> str:
    """Return *email* stripped and lower-cased (``""`` for ``None``)."""
    return (email or "").strip().lower()


def _field_error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def validate_email(email: Optional[str], field: str = "email") -> list[dict]:
    """Check that *email* is present and syntactically valid."""
    normalized = normalize_email(email)
    if not normalized:
        return [_field_error(field, "An email address is required.")]
    if not _validators.email(normalized):
        return [_field_error(field, "This email address is invalid.")]
    return []


def validate_password_pair(
    password: Optional[str], confirm: Optional[str], field: str = "password"
) -> list[dict]:
    """Check presence, length bounds and confirmation of a new password.

    Complexity rules are intentionally absent.
    """
    if not password:
        return [_field_error(field, "A password is required.")]

    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(
            _field_error(
                field, f"Passwords must be at least {PASSWORD_MIN_LENGTH} characters."
            )
        )
    elif len(password) > PASSWORD_MAX_LENGTH:
        errors.append(
            _field_error(
                field, f"Passwords must be at most {PASSWORD_MAX_LENGTH} characters."
            )
        )
    if password != confirm:
        errors.append(_field_error("confirm", "The passwords given do not match."))
    return errors

"""
Password reset token document model.

Maps to the `password-reset-tokens` MongoDB collection.

At most one record exists per email address (unique index). auth_slug_hash
stores the salted hash of the emailed slug, never the slug itself. It is
cleared once the token is authenticated. The TTL index on expires_at
purges the record whatever state it is in.

    Requested ──authenticate──▶ Authenticated ──change password──▶ Spent
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from schemas.models.base import MongoBaseModel


class ResetTokenState(str, Enum):
    REQUESTED = "requested"
    AUTHENTICATED = "authenticated"
    SPENT = "spent"


class PasswordResetTokenDoc(MongoBaseModel):
    """Document model for the `password-reset-tokens` collection."""

    email: str
    authenticated: bool = False
    auth_slug_hash: Optional[str] = None
    spent: bool = False
    expires_at: datetime
    created_at: Optional[datetime] = None

    @property
    def state(self) -> ResetTokenState:
        if self.spent:
            return ResetTokenState.SPENT
        if self.authenticated:
            return ResetTokenState.AUTHENTICATED
        return ResetTokenState.REQUESTED

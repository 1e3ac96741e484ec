"""
User document model.

Maps to the `users` MongoDB collection.

A user is created unverified with the three verification fields populated.
Verification flips `verified` to True exactly once and clears those fields;
an unverified user whose `verification_expiry` passes is purged by the TTL
index on that field.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel
from shared.datetime_utils import utcnow


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    email: str
    password_hash: Optional[str] = None

    login_attempts: int = Field(default=0, ge=0)
    login_attempts_expiry: datetime = Field(default_factory=utcnow)

    # One salted hash per device the user is logged in on
    session_nonces: list[str] = []

    verified: bool = False
    verification_slug_hash: Optional[str] = None
    verification_ip_hash: Optional[str] = None
    verification_expiry: Optional[datetime] = None

    created_at: Optional[datetime] = None

    @property
    def user_id(self) -> str:
        return str(self.id)

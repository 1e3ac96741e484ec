"""
Async repository for the `password-reset-tokens` collection.

State transitions are find_one_and_update calls filtered on the prior state,
so of two concurrent requests against the same token at most one matches.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import ReturnDocument

from schemas.models.base import parse_object_id
from schemas.models.token import PasswordResetTokenDoc
from shared.datetime_utils import to_storage, utcnow
from shared.validators import normalize_email


class ResetTokenRepository:
    def __init__(self, collection) -> None:
        self._col = collection

    async def find_live(
        self,
        email: str,
        now: datetime,
        *,
        authenticated: Optional[bool] = None,
        spent: Optional[bool] = None,
    ) -> Optional[PasswordResetTokenDoc]:
        query: dict = {
            "email": normalize_email(email),
            "expires_at": {"$gt": to_storage(now)},
        }
        if authenticated is not None:
            query["authenticated"] = authenticated
        if spent is not None:
            query["spent"] = spent
        return PasswordResetTokenDoc.from_mongo(await self._col.find_one(query))

    async def insert(self, token: PasswordResetTokenDoc) -> PasswordResetTokenDoc:
        """Insert *token*; DuplicateKeyError propagates if one exists for the email."""
        if token.created_at is None:
            token.created_at = utcnow()
        result = await self._col.insert_one(token.to_mongo())
        token.id = result.inserted_id
        return token

    async def delete(self, token_id: str) -> bool:
        oid = parse_object_id(token_id)
        if oid is None:
            return False
        result = await self._col.delete_one({"_id": oid})
        return result.deleted_count == 1

    async def delete_expired(self, email: str, now: datetime) -> bool:
        result = await self._col.delete_one(
            {
                "email": normalize_email(email),
                "expires_at": {"$lte": to_storage(now)},
            }
        )
        return result.deleted_count == 1

    async def mark_authenticated(
        self, token_id: str, slug_hash: str, now: datetime
    ) -> Optional[PasswordResetTokenDoc]:
        """Requested → Authenticated, keyed on the slug hash that was checked."""
        oid = parse_object_id(token_id)
        if oid is None:
            return None
        doc = await self._col.find_one_and_update(
            {
                "_id": oid,
                "authenticated": False,
                "spent": False,
                "auth_slug_hash": slug_hash,
                "expires_at": {"$gt": to_storage(now)},
            },
            {"$set": {"authenticated": True, "auth_slug_hash": None}},
            return_document=ReturnDocument.AFTER,
        )
        return PasswordResetTokenDoc.from_mongo(doc)

    async def mark_spent(
        self, email: str, now: datetime
    ) -> Optional[PasswordResetTokenDoc]:
        """Authenticated → Spent."""
        doc = await self._col.find_one_and_update(
            {
                "email": normalize_email(email),
                "authenticated": True,
                "spent": False,
                "expires_at": {"$gt": to_storage(now)},
            },
            {"$set": {"spent": True}},
            return_document=ReturnDocument.AFTER,
        )
        return PasswordResetTokenDoc.from_mongo(doc)

"""
Async repository for the `users` collection.

Throttle counters and the session nonce set are the only fields that
concurrent requests mutate, so they are only ever changed with atomic
operators ($inc, $push, $pull) or with a filter on the prior state.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import ReturnDocument

from schemas.models.base import parse_object_id
from schemas.models.user import UserDoc
from shared.datetime_utils import to_storage, utcnow
from shared.logging import get_logger
from shared.validators import normalize_email

log = get_logger(__name__)

_CLEARED_VERIFICATION = {
    "verification_slug_hash": None,
    "verification_ip_hash": None,
    "verification_expiry": None,
}


class UserRepository:
    def __init__(self, collection) -> None:
        self._col = collection

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        return UserDoc.from_mongo(await self._col.find_one({"_id": oid}))

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"email": normalize_email(email)})
        return UserDoc.from_mongo(doc)

    async def find_verified_by_email(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one(
            {"email": normalize_email(email), "verified": True}
        )
        return UserDoc.from_mongo(doc)

    async def find_unverified_by_email(
        self, email: str, now: datetime
    ) -> Optional[UserDoc]:
        doc = await self._col.find_one(
            {
                "email": normalize_email(email),
                "verified": False,
                "verification_expiry": {"$gt": to_storage(now)},
            }
        )
        return UserDoc.from_mongo(doc)

    async def insert(self, user: UserDoc) -> UserDoc:
        """Insert *user*; pymongo's DuplicateKeyError propagates on a taken email."""
        if user.created_at is None:
            user.created_at = utcnow()
        result = await self._col.insert_one(user.to_mongo())
        user.id = result.inserted_id
        return user

    async def delete(self, user_id: str) -> bool:
        oid = parse_object_id(user_id)
        if oid is None:
            return False
        result = await self._col.delete_one({"_id": oid})
        return result.deleted_count == 1

    async def delete_expired_unverified(self, email: str, now: datetime) -> bool:
        result = await self._col.delete_one(
            {
                "email": normalize_email(email),
                "verified": False,
                "verification_expiry": {"$lte": to_storage(now)},
            }
        )
        if result.deleted_count:
            log.info("expired_unverified_user_purged")
        return result.deleted_count == 1

    async def mark_verified(self, user_id: str) -> bool:
        """Flip an unverified user to verified and clear the verification fields."""
        oid = parse_object_id(user_id)
        if oid is None:
            return False
        result = await self._col.update_one(
            {"_id": oid, "verified": False},
            {"$set": {"verified": True, **_CLEARED_VERIFICATION}},
        )
        return result.modified_count == 1

    async def update_password(self, user_id: str, password_hash: str) -> bool:
        oid = parse_object_id(user_id)
        if oid is None:
            return False
        result = await self._col.update_one(
            {"_id": oid}, {"$set": {"password_hash": password_hash}}
        )
        return result.matched_count == 1

    async def restart_login_attempts(
        self, user_id: str, now: datetime, expiry: datetime
    ) -> Optional[UserDoc]:
        """Start a fresh window at one failure, only if the current window has lapsed."""
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one_and_update(
            {"_id": oid, "login_attempts_expiry": {"$lte": to_storage(now)}},
            {
                "$set": {
                    "login_attempts": 1,
                    "login_attempts_expiry": to_storage(expiry),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        return UserDoc.from_mongo(doc)

    async def increment_login_attempts(
        self, user_id: str, now: datetime, expiry: datetime
    ) -> Optional[UserDoc]:
        """Count one more failure, only if the current window is still open."""
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one_and_update(
            {"_id": oid, "login_attempts_expiry": {"$gt": to_storage(now)}},
            {
                "$inc": {"login_attempts": 1},
                "$set": {"login_attempts_expiry": to_storage(expiry)},
            },
            return_document=ReturnDocument.AFTER,
        )
        return UserDoc.from_mongo(doc)

    async def push_session_nonce(self, user_id: str, nonce_hash: str) -> bool:
        oid = parse_object_id(user_id)
        if oid is None:
            return False
        result = await self._col.update_one(
            {"_id": oid}, {"$push": {"session_nonces": nonce_hash}}
        )
        return result.matched_count == 1

    async def pull_session_nonce(self, user_id: str, nonce_hash: str) -> bool:
        oid = parse_object_id(user_id)
        if oid is None:
            return False
        result = await self._col.update_one(
            {"_id": oid, "session_nonces": nonce_hash},
            {"$pull": {"session_nonces": nonce_hash}},
        )
        return result.modified_count == 1

    async def clear_session_nonces(self, user_id: str) -> bool:
        oid = parse_object_id(user_id)
        if oid is None:
            return False
        result = await self._col.update_one(
            {"_id": oid}, {"$set": {"session_nonces": []}}
        )
        return result.matched_count == 1

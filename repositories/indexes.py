"""
Collection names and index setup.

The TTL indexes are the store's half of the expiry contract: MongoDB's reaper
removes unverified users and reset tokens once their expiry timestamp passes.
Reads filter on the same timestamps, so records awaiting the reaper are already
invisible to the engine.
"""

from __future__ import annotations

from pymongo import ASCENDING

from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"
RESET_TOKENS_COLLECTION = "password-reset-tokens"


async def ensure_indexes(db) -> None:
    users = db[USERS_COLLECTION]
    await users.create_index([("email", ASCENDING)], unique=True)
    # Verified users have a null expiry, which the TTL monitor ignores
    await users.create_index(
        [("verification_expiry", ASCENDING)], expireAfterSeconds=0
    )

    reset_tokens = db[RESET_TOKENS_COLLECTION]
    await reset_tokens.create_index([("email", ASCENDING)], unique=True)
    await reset_tokens.create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)

    log.info("indexes_ensured")

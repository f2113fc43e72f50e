"""
Redis access for the session revocation list.

A revoked session is a ``session:revoked:{jti}`` key whose TTL matches the
remaining lifetime of the token, so entries expire with the tokens they
block and the list never needs sweeping.
"""

from __future__ import annotations

import redis.asyncio as redis

from app.core.config import get_settings

settings = get_settings()

REVOKED_PREFIX = "session:revoked:"

_client: redis.Redis | None = None


def revocation_key(jti: str) -> str:
    return f"{REVOKED_PREFIX}{jti}"


async def get_redis() -> redis.Redis:
    """Lazily connect; one client (and pool) per process."""
    global _client
    if _client is None:
        _client = redis.from_url(settings.redis_url, decode_responses=True)
    return _client


async def mark_revoked(client: redis.Redis, jti: str, ttl_seconds: int) -> None:
    # SETEX rejects a zero or negative expiry
    await client.setex(revocation_key(jti), max(ttl_seconds, 1), "1")


async def is_revoked(client: redis.Redis, jti: str) -> bool:
    return await client.exists(revocation_key(jti)) > 0


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None

"""
Redis connection and key layout for cart persistence.

The engine is synchronous, so it shares one sync Upstash client per process.
Credentials are read when the client is first needed, not at import.
"""

import os
from typing import Optional, Tuple

from upstash_redis import Redis

URL_ENV = "UPSTASH_REDIS_REST_URL"
TOKEN_ENV = "UPSTASH_REDIS_REST_TOKEN"

_redis: Optional[Redis] = None


def _credentials() -> Tuple[str, str]:
    url = os.environ.get(URL_ENV, "")
    token = os.environ.get(TOKEN_ENV, "")
    if not url or not token:
        raise ValueError(f"{URL_ENV} and {TOKEN_ENV} must be set for Redis cart storage")
    return url, token


def get_redis_sync() -> Redis:
    """
    Shared Upstash Redis client, created on first use.

    Raises:
        ValueError: If the Upstash URL or token is missing
    """
    global _redis

    if _redis is None:
        url, token = _credentials()
        _redis = Redis(url=url, token=token)
    return _redis


class RedisKeys:
    """Keys of the two documents stored per session: {prefix}{session_key}:items|conditions"""

    CART = "cart:"

    @staticmethod
    def items_key(session_key: str, prefix: str = CART) -> str:
        return f"{prefix}{session_key}:items"

    @staticmethod
    def conditions_key(session_key: str, prefix: str = CART) -> str:
        return f"{prefix}{session_key}:conditions"


class TTL:
    """Expiry of cart documents, in seconds."""

    CART = 24 * 60 * 60  # abandoned carts expire after a day

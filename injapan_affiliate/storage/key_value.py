"""
Visitor key/value storage.

Small persistent key/value abstraction holding the referral code, its
capture timestamp and the visitor id. Values are plain strings.
"""

from typing import Protocol

import redis.asyncio as redis
from loguru import logger

from injapan_affiliate.config.settings import settings
from injapan_affiliate.utils.redis_utils import (
    get_redis_client,
    get_redis_url_masked,
)


class KeyValueStore(Protocol):
    """Async string key/value store scoped to one visitor."""

    async def get(self, key: str) -> str | None:
        """Get value or None."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Set value, overwriting."""
        ...

    async def delete(self, key: str) -> None:
        """Delete key if present."""
        ...


class MemoryKeyValueStore:
    """In-process store (one instance per visitor/browser)."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        """Initialize store with optional initial values."""
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        """Get value or None."""
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        """Set value, overwriting."""
        self._data[key] = value

    async def delete(self, key: str) -> None:
        """Delete key if present."""
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of stored values."""
        return dict(self._data)


class RedisKeyValueStore:
    """
    Redis-backed store for server-rendered sessions.

    Keys are namespaced per visitor session and expire after ttl_seconds,
    so an abandoned session cleans itself up after the referral window.
    """

    def __init__(
        self,
        client: redis.Redis,
        namespace: str,
        ttl_seconds: int | None = None,
    ) -> None:
        """
        Initialize store.

        Args:
            client: Redis client (decode_responses=True)
            namespace: Visitor session key prefix
            ttl_seconds: Expiry applied on every write
        """
        self.client = client
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds

    def _key(self, key: str) -> str:
        return f"visitor:{self.namespace}:{key}"

    async def get(self, key: str) -> str | None:
        """Get value or None."""
        value = await self.client.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        """Set value, overwriting."""
        await self.client.set(self._key(key), value, ex=self.ttl_seconds)

    async def delete(self, key: str) -> None:
        """Delete key if present."""
        await self.client.delete(self._key(key))


async def create_redis_store(namespace: str) -> RedisKeyValueStore:
    """
    Build a Redis store for one visitor session from settings.

    Entries expire after the referral window.

    Args:
        namespace: Visitor session id

    Returns:
        Redis-backed store
    """
    client = await get_redis_client()
    logger.debug(
        "Using Redis visitor storage",
        extra={"redis_url": get_redis_url_masked(), "namespace": namespace},
    )
    return RedisKeyValueStore(
        client,
        namespace,
        ttl_seconds=settings.referral_window_days * 24 * 60 * 60,
    )

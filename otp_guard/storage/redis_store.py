"""
Redis Store
===========
Redis-backed DurableStore using the asyncio client.
"""

from typing import List, Optional, Union

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .base import DurableStore, StoreError

logger = structlog.get_logger(__name__)


def _decode(value: Union[bytes, str, None]) -> Optional[str]:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisStore(DurableStore):
    """
    DurableStore over a Redis instance.

    Every key is written under ``prefix`` so several applications can share
    one database. Backend failures surface as :class:`StoreError`.
    """

    def __init__(self, redis: Redis, prefix: str = ""):
        """
        Args:
            redis: Async Redis client
            prefix: Prepended to every key
        """
        self.redis = redis
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "") -> "RedisStore":
        """Create a store from a ``redis://`` URL."""
        return cls(Redis.from_url(url), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return _decode(await self.redis.get(self._key(key)))
        except RedisError as e:
            raise StoreError(f"Redis get failed for {key}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self.redis.set(self._key(key), value)
        except RedisError as e:
            raise StoreError(f"Redis set failed for {key}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            await self.redis.delete(self._key(key))
        except RedisError as e:
            raise StoreError(f"Redis delete failed for {key}: {e}") from e

    async def all_keys(self) -> List[str]:
        keys: List[str] = []
        try:
            async for raw in self.redis.scan_iter(match=f"{self.prefix}*"):
                keys.append(_decode(raw)[len(self.prefix):])
        except RedisError as e:
            raise StoreError(f"Redis scan failed: {e}") from e
        return keys

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self.redis.aclose()

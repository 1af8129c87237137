"""Redis backend for the session store."""

import logging
from typing import Iterable, Optional, Set

import redis
import redis.asyncio as aioredis

from .config import Settings, settings as default_settings
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

# Keys per DEL command when deleting in bulk
DELETE_CHUNK_SIZE = 500


class RedisStore:
    """Async Redis client implementing the ``SessionStore`` contract.

    Every ``redis.RedisError`` is logged and re-raised as ``StoreUnavailable``.
    """

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @classmethod
    def from_settings(cls, config: Settings = None) -> 'RedisStore':
        """Build a pooled client from settings."""
        config = config or default_settings
        client = aioredis.from_url(
            config.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=config.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=config.REDIS_SOCKET_TIMEOUT,
            socket_timeout=config.REDIS_SOCKET_TIMEOUT,
            socket_keepalive=True,
            health_check_interval=30
        )
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.client.get(key)
            logger.debug(f"GET {key}: {value}")
            return value
        except redis.RedisError as e:
            logger.error(f"Redis error reading {key}: {e}")
            raise StoreUnavailable(f"Failed to read {key}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self.client.set(key, value)
        except redis.RedisError as e:
            logger.error(f"Redis error writing {key}: {e}")
            raise StoreUnavailable(f"Failed to write {key}: {e}") from e

    async def set_if_absent(self, key: str, value: str) -> bool:
        """
        Write ``value`` only if ``key`` does not exist (SET NX).

        Returns:
            True if this call created the key
        """
        try:
            created = await self.client.set(key, value, nx=True)
            return bool(created)
        except redis.RedisError as e:
            logger.error(f"Redis error writing {key} (NX): {e}")
            raise StoreUnavailable(f"Failed to write {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Redis error deleting {key}: {e}")
            raise StoreUnavailable(f"Failed to delete {key}: {e}") from e

    async def delete_many(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        try:
            for start in range(0, len(keys), DELETE_CHUNK_SIZE):
                await self.client.delete(*keys[start:start + DELETE_CHUNK_SIZE])
            logger.debug(f"Deleted {len(keys)} keys")
        except redis.RedisError as e:
            logger.error(f"Redis error deleting {len(keys)} keys: {e}")
            raise StoreUnavailable(f"Failed to delete keys: {e}") from e

    async def increment(self, key: str) -> int:
        """
        Atomically increment the counter at ``key`` (INCR).

        Returns:
            The new value
        """
        try:
            return await self.client.incr(key)
        except redis.RedisError as e:
            logger.error(f"Redis error incrementing {key}: {e}")
            raise StoreUnavailable(f"Failed to increment {key}: {e}") from e

    async def list_keys(self, prefix: str) -> Set[str]:
        """Enumerate keys starting with ``prefix`` using incremental SCAN."""
        try:
            return {key async for key in self.client.scan_iter(match=f"{prefix}*", count=1000)}
        except redis.RedisError as e:
            logger.error(f"Redis error scanning {prefix}*: {e}")
            raise StoreUnavailable(f"Failed to list keys: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            raise StoreUnavailable(f"Redis ping failed: {e}") from e

    async def close(self) -> None:
        """Close Redis connection pool."""
        try:
            await self.client.aclose()
            logger.info("Redis connection pool closed")
        except redis.RedisError as e:
            logger.error(f"Error closing Redis connection: {e}")

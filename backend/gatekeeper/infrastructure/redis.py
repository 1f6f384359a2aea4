"""Redis client for cross-process coordination.

Only locking is needed here: whole-set replacements of a role's grants or a
subject's page grants must not interleave between application instances.
The client is created and owned by the composition root; nothing in this
module is global.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from redis.asyncio import Redis as AsyncRedis, from_url as async_from_url
from redis.exceptions import RedisError

from ..errors import StoreUnavailableError

logger = logging.getLogger("gatekeeper.redis")

# Deletes the key only while it still holds our token, so a lock that expired
# and was re-acquired by someone else is left alone.
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class RedisClient:
    """Async Redis client for distributed locking."""

    def __init__(self, redis_url: str, *, client: AsyncRedis | None = None) -> None:
        """
        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            client: Pre-built client, used instead of connecting to redis_url
        """
        self._redis_url = redis_url
        self._redis: AsyncRedis | None = client

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self._redis is None:
            self._redis = async_from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("Redis connection established")

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis connection closed")

    async def _ensure_connected(self) -> AsyncRedis:
        if self._redis is None:
            await self.connect()
        assert self._redis is not None
        return self._redis

    @asynccontextmanager
    async def hold_lock(
        self,
        key: str,
        *,
        ttl_seconds: int = 30,
        wait_seconds: float = 10.0,
        retry_interval: float = 0.05,
    ) -> AsyncGenerator[None, None]:
        """Block until the lock is taken, then hold it for the body.

        Raises:
            StoreUnavailableError: If Redis fails or the lock is not obtained
                within wait_seconds
        """
        lock_key = f"lock:{key}"
        token = uuid.uuid4().hex
        deadline = time.monotonic() + wait_seconds

        try:
            redis = await self._ensure_connected()
            while not await redis.set(lock_key, token, nx=True, ex=ttl_seconds):
                if time.monotonic() >= deadline:
                    logger.warning("lock_wait_timeout key=%s wait=%.1fs", lock_key, wait_seconds)
                    raise StoreUnavailableError(
                        f"Timed out waiting for lock {key}",
                        details={"lock": key},
                    )
                await asyncio.sleep(retry_interval)
        except RedisError as exc:
            logger.error(
                "Redis operation failed operation=SET key=%s error=%s",
                lock_key,
                exc,
            )
            raise StoreUnavailableError(
                "Lock service unavailable", details={"lock": key}
            ) from exc

        logger.debug("Acquired lock: %s (TTL=%ds)", lock_key, ttl_seconds)
        try:
            yield
        finally:
            await self._release(redis, lock_key, token)

    async def _release(self, redis: AsyncRedis, lock_key: str, token: str) -> None:
        try:
            await redis.eval(_RELEASE_SCRIPT, 1, lock_key, token)
            logger.debug("Released lock: %s", lock_key)
        except RedisError as exc:
            # The TTL frees the lock anyway.
            logger.error(
                "Redis operation failed operation=RELEASE key=%s error=%s",
                lock_key,
                exc,
            )

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Protocol

from ...domain.grants import SubjectType
from ...infrastructure.redis import RedisClient


def role_grants_key(role_id: uuid.UUID) -> str:
    return f"role:{role_id}:grants"


def page_grants_key(subject_type: SubjectType, subject_id: uuid.UUID) -> str:
    return f"pages:{subject_type.value}:{subject_id}"


class EntityLock(Protocol):
    """Serializes whole-set replacements targeting the same entity."""

    def hold(self, key: str) -> AsyncContextManager[None]:
        ...


class LocalEntityLock:
    """In-process locks keyed by entity. Enough for a single application instance."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def active_keys(self) -> set[str]:
        return set(self._locks)


class RedisEntityLock:
    """Cross-process locks for deployments running several instances."""

    def __init__(
        self,
        client: RedisClient,
        *,
        ttl_seconds: int = 30,
        wait_seconds: float = 10.0,
    ) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._wait_seconds = wait_seconds

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        async with self._client.hold_lock(
            f"gatekeeper:{key}",
            ttl_seconds=self._ttl_seconds,
            wait_seconds=self._wait_seconds,
        ):
            yield

import uuid

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from gatekeeper.config import Settings
from gatekeeper.dependencies import build_entity_lock
from gatekeeper.errors import StoreUnavailableError
from gatekeeper.infrastructure.redis import RedisClient
from gatekeeper.services.access import LocalEntityLock, RedisEntityLock
from gatekeeper.services.access.locks import role_grants_key


class FakeRedis:
    """Enough of redis.asyncio.Redis for SET NX EX locks and the release script."""

    def __init__(self, *, fail: bool = False) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = fail
        self.closed = False

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool | None:
        if self.fail:
            raise RedisConnectionError("connection refused")
        if nx and key in self.values:
            return None
        self.values[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def eval(self, script: str, numkeys: int, key: str, token: str) -> int:
        if self.values.get(key) == token:
            del self.values[key]
            return 1
        return 0

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.anyio
async def test_hold_lock_sets_and_releases_key() -> None:
    fake = FakeRedis()
    client = RedisClient("redis://localhost:6379/0", client=fake)

    async with client.hold_lock("role:1", ttl_seconds=15):
        assert "lock:role:1" in fake.values
        assert fake.ttls["lock:role:1"] == 15

    assert fake.values == {}


@pytest.mark.anyio
async def test_hold_lock_times_out_when_taken() -> None:
    fake = FakeRedis()
    client = RedisClient("redis://localhost:6379/0", client=fake)

    async with client.hold_lock("role:1"):
        with pytest.raises(StoreUnavailableError):
            async with client.hold_lock("role:1", wait_seconds=0.05, retry_interval=0.01):
                pass

    assert fake.values == {}


@pytest.mark.anyio
async def test_hold_lock_when_redis_is_down() -> None:
    client = RedisClient("redis://localhost:6379/0", client=FakeRedis(fail=True))

    with pytest.raises(StoreUnavailableError) as exc_info:
        async with client.hold_lock("role:1"):
            pass

    assert exc_info.value.details == {"lock": "role:1"}


@pytest.mark.anyio
async def test_release_leaves_foreign_token() -> None:
    fake = FakeRedis()
    client = RedisClient("redis://localhost:6379/0", client=fake)

    async with client.hold_lock("role:1"):
        # Expired and taken over by another instance.
        fake.values["lock:role:1"] = "someone-else"

    assert fake.values == {"lock:role:1": "someone-else"}


@pytest.mark.anyio
async def test_disconnect_closes_client() -> None:
    fake = FakeRedis()
    client = RedisClient("redis://localhost:6379/0", client=fake)

    await client.disconnect()
    await client.disconnect()

    assert fake.closed is True


@pytest.mark.anyio
async def test_redis_entity_lock_namespaces_keys() -> None:
    fake = FakeRedis()
    locks = RedisEntityLock(
        RedisClient("redis://localhost:6379/0", client=fake), ttl_seconds=5
    )
    role_id = uuid.uuid4()

    async with locks.hold(role_grants_key(role_id)):
        assert list(fake.values) == [f"lock:gatekeeper:role:{role_id}:grants"]
        assert fake.ttls[f"lock:gatekeeper:role:{role_id}:grants"] == 5


def test_build_entity_lock_picks_backend() -> None:
    settings = Settings(database_url="postgresql+asyncpg://u:p@localhost/db")

    assert isinstance(build_entity_lock(settings), LocalEntityLock)
    client = RedisClient("redis://localhost:6379/0", client=FakeRedis())
    assert isinstance(build_entity_lock(settings, client), RedisEntityLock)

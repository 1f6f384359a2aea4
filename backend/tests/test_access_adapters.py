import uuid
from types import SimpleNamespace
from typing import Any

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from gatekeeper.crud.filters import _like_pattern, substring_filter
from gatekeeper.crud.permission import PermissionRepository
from gatekeeper.crud.role import RoleRepository
from gatekeeper.crud.user_role import UserRoleRepository
from gatekeeper.database import store_errors
from gatekeeper.domain.grants import GrantSpec
from gatekeeper.domain.quota import UNLIMITED, Capped, LimitType, Window
from gatekeeper.errors import DuplicateNameError, NotFoundError, StoreUnavailableError
from gatekeeper.models.permission import Permission


class DummyResult:
    def __init__(self, rows: list[Any] | None = None, scalar: Any = None) -> None:
        self.rows = rows or []
        self.scalar = scalar

    def all(self) -> list[Any]:
        return self.rows

    def scalar_one_or_none(self) -> Any:
        return self.scalar

    def scalars(self) -> "DummyResult":
        return self


class DummySession:
    def __init__(
        self,
        *,
        get_result: Any = None,
        execute_result: DummyResult | None = None,
        flush_error: Exception | None = None,
        commit_error: Exception | None = None,
    ) -> None:
        self.get_result = get_result
        self.execute_result = execute_result or DummyResult()
        self.flush_error = flush_error
        self.commit_error = commit_error
        self.get_args = None
        self.added: list[Any] = []
        self.executed = 0
        self.commit_calls = 0
        self.rollback_calls = 0

    async def get(self, model: type, key: Any) -> Any:
        self.get_args = (model, key)
        return self.get_result

    async def execute(self, statement: Any) -> DummyResult:
        self.executed += 1
        return self.execute_result

    def add(self, obj: Any) -> None:
        self.added.append(obj)

    async def flush(self) -> None:
        if self.flush_error is not None:
            raise self.flush_error

    async def refresh(self, obj: Any) -> None:
        return None

    async def commit(self) -> None:
        self.commit_calls += 1
        if self.commit_error is not None:
            raise self.commit_error

    async def rollback(self) -> None:
        self.rollback_calls += 1


@pytest.mark.anyio
async def test_permission_repository_get_by_id() -> None:
    sentinel = object()
    session = DummySession(get_result=sentinel)
    repo = PermissionRepository(session)
    permission_id = uuid.uuid4()

    assert await repo.get_by_id(permission_id) is sentinel
    assert session.get_args == (Permission, permission_id)


@pytest.mark.anyio
async def test_permission_repository_maps_unique_violation() -> None:
    session = DummySession(
        flush_error=IntegrityError("INSERT", {}, Exception("duplicate key"))
    )
    repo = PermissionRepository(session)

    with pytest.raises(DuplicateNameError) as exc_info:
        await repo.create("refund", None, False)

    assert exc_info.value.details == {"entity": "permission", "name": "refund"}


@pytest.mark.anyio
async def test_lost_connection_becomes_store_unavailable() -> None:
    session = DummySession(
        flush_error=OperationalError("INSERT", {}, Exception("connection refused"))
    )
    repo = PermissionRepository(session)

    with pytest.raises(StoreUnavailableError) as exc_info:
        await repo.create("refund", None, False)

    assert exc_info.value.details == {"operation": "permissions.create"}


@pytest.mark.anyio
async def test_commit_failure_becomes_store_unavailable() -> None:
    session = DummySession(
        commit_error=OperationalError("COMMIT", {}, Exception("server closed"))
    )
    repo = PermissionRepository(session)

    with pytest.raises(StoreUnavailableError):
        await repo.commit()


@pytest.mark.anyio
async def test_store_errors_leaves_other_database_errors_alone() -> None:
    with pytest.raises(ProgrammingError):
        async with store_errors("select"):
            raise ProgrammingError("SELECT", {}, Exception("syntax error"))


@pytest.mark.anyio
async def test_user_role_add_existing_pair() -> None:
    session = DummySession(execute_result=DummyResult(scalar=object()))
    repo = UserRoleRepository(session)

    assert await repo.add(uuid.uuid4(), uuid.uuid4()) is False
    assert session.added == []


@pytest.mark.anyio
async def test_role_repository_list_grants_builds_quotas() -> None:
    role_id = uuid.uuid4()
    capped_id = uuid.uuid4()
    open_id = uuid.uuid4()
    rows = [
        (
            SimpleNamespace(
                role_id=role_id,
                permission_id=capped_id,
                value=500,
                limit_type="daily",
                limit_period=1,
            ),
            "refund",
        ),
        (
            SimpleNamespace(
                role_id=role_id,
                permission_id=open_id,
                value=None,
                limit_type="none",
                limit_period=None,
            ),
            "view_balance",
        ),
    ]
    repo = RoleRepository(DummySession(execute_result=DummyResult(rows=rows)))

    grants = await repo.list_grants([role_id])

    assert [(g.permission_name, g.quota) for g in grants] == [
        ("refund", Capped(500.0, Window(LimitType.DAILY, 1))),
        ("view_balance", UNLIMITED),
    ]


@pytest.mark.anyio
async def test_role_repository_list_grants_of_nothing() -> None:
    session = DummySession()
    repo = RoleRepository(session)

    assert await repo.list_grants([]) == []
    assert session.executed == 0


@pytest.mark.anyio
async def test_role_repository_replace_grants_with_deleted_permission() -> None:
    kept_id = uuid.uuid4()
    deleted_id = uuid.uuid4()
    session = DummySession(execute_result=DummyResult(rows=[kept_id]))
    repo = RoleRepository(session)

    with pytest.raises(NotFoundError) as exc_info:
        await repo.replace_grants(
            uuid.uuid4(),
            [GrantSpec(kept_id, UNLIMITED), GrantSpec(deleted_id, UNLIMITED)],
        )

    assert exc_info.value.details == {"entity": "permission", "id": str(deleted_id)}
    assert session.executed == 1
    assert session.added == []


@pytest.mark.anyio
async def test_role_repository_replace_grants_adds_rows() -> None:
    permission_id = uuid.uuid4()
    session = DummySession(execute_result=DummyResult(rows=[permission_id]))
    repo = RoleRepository(session)

    await repo.replace_grants(
        uuid.uuid4(), [GrantSpec(permission_id, Capped(500, Window(LimitType.DAILY, 1)))]
    )

    assert session.executed == 2
    assert [(row.permission_id, row.value, row.limit_type) for row in session.added] == [
        (permission_id, 500, "daily")
    ]


def test_substring_filter_blank_term() -> None:
    assert substring_filter(None, Permission.name) is None
    assert substring_filter("   ", Permission.name) is None


def test_like_pattern_escapes_wildcards() -> None:
    assert _like_pattern("100%_off") == "%100\\%\\_off%"
    assert _like_pattern("a\\b") == "%a\\\\b%"

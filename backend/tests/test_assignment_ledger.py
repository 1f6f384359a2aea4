import uuid

import pytest

from gatekeeper.errors import NotFoundError
from gatekeeper.services.access import AssignmentLedger, RoleStore


@pytest.mark.anyio
async def test_assign_is_idempotent(role_store: RoleStore, ledger: AssignmentLedger) -> None:
    role = await role_store.create("support")
    user_id = uuid.uuid4()

    first = await ledger.assign(user_id, role.id)
    second = await ledger.assign(user_id, role.id)

    assert first is True
    assert second is False
    assert [r.id for r in await ledger.roles_of(user_id)] == [role.id]


@pytest.mark.anyio
async def test_assign_unknown_role(ledger: AssignmentLedger) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await ledger.assign(uuid.uuid4(), uuid.uuid4())

    assert exc_info.value.entity == "role"


@pytest.mark.anyio
async def test_revoke(role_store: RoleStore, ledger: AssignmentLedger) -> None:
    role = await role_store.create("support")
    user_id = uuid.uuid4()
    await ledger.assign(user_id, role.id)

    assert await ledger.revoke(user_id, role.id) is True
    assert await ledger.revoke(user_id, role.id) is False
    assert await ledger.roles_of(user_id) == []


@pytest.mark.anyio
async def test_revoke_unknown_role(ledger: AssignmentLedger) -> None:
    with pytest.raises(NotFoundError):
        await ledger.revoke(uuid.uuid4(), uuid.uuid4())


@pytest.mark.anyio
async def test_roles_of_keeps_assignment_order(
    role_store: RoleStore, ledger: AssignmentLedger
) -> None:
    first = await role_store.create("b-role")
    second = await role_store.create("a-role")
    user_id = uuid.uuid4()
    await ledger.assign(user_id, first.id)
    await ledger.assign(user_id, second.id)

    assert [r.name for r in await ledger.roles_of(user_id)] == ["b-role", "a-role"]


@pytest.mark.anyio
async def test_roles_of_user_without_roles(ledger: AssignmentLedger) -> None:
    assert await ledger.roles_of(uuid.uuid4()) == []


@pytest.mark.anyio
async def test_users_of(role_store: RoleStore, ledger: AssignmentLedger) -> None:
    role = await role_store.create("support")
    alice, bob = uuid.uuid4(), uuid.uuid4()
    await ledger.assign(alice, role.id)
    await ledger.assign(bob, role.id)

    assert await ledger.users_of(role.id) == [alice, bob]

    with pytest.raises(NotFoundError):
        await ledger.users_of(uuid.uuid4())

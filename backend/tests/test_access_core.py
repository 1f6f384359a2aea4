import uuid

import pytest

from gatekeeper.config import Settings
from gatekeeper.dependencies import assemble_access_core, build_access_core
from gatekeeper.domain.grants import SubjectType
from gatekeeper.schemas.role import GrantIn
from gatekeeper.services.access import LocalEntityLock
from tests.access_fakes import make_repositories


def _settings(**overrides: object) -> Settings:
    return Settings(database_url="postgresql+asyncpg://u:p@localhost/db", **overrides)


@pytest.mark.anyio
async def test_wired_core_end_to_end() -> None:
    repos = make_repositories()
    core = assemble_access_core(
        repos.permissions,
        repos.roles,
        repos.user_roles,
        repos.pages,
        _settings(),
        locks=LocalEntityLock(),
    )
    view = await core.catalog.create("view_balance")
    refund = await core.catalog.create("refund", requires_value=True)
    await core.catalog.create("delete_user")
    grants = [
        GrantIn(permission_id=view.id),
        GrantIn(permission_id=refund.id, value=500, limit_type="daily", limit_period=1),
    ]
    support = await core.roles.create("support", [grant.to_spec() for grant in grants])
    page = await core.pages.create_page("/transactions/gaming", "Gaming")
    await core.pages.grant_pages(SubjectType.ROLE, support.id, [page.id])
    agent = uuid.uuid4()
    await core.assignments.assign(agent, support.id)

    limit = await core.evaluator.permission_limit(agent, "refund")

    assert limit.as_dict() == {"value": 500, "window": "1 day"}
    assert await core.evaluator.has_permission(agent, "delete_user") is False
    assert await core.pages.is_page_allowed(agent, "/transactions/gaming") is True


@pytest.mark.anyio
async def test_settings_reach_the_services() -> None:
    repos = make_repositories()
    core = assemble_access_core(
        repos.permissions,
        repos.roles,
        repos.user_roles,
        repos.pages,
        _settings(cascade_deletes=False, bulk_atomic=True, default_per_page=3),
        locks=LocalEntityLock(),
    )

    assert core.catalog.cascade_deletes is False
    assert core.catalog.bulk_atomic is True
    assert core.roles.cascade_deletes is False
    assert (await core.catalog.list()).per_page == 3


def test_build_access_core_uses_one_session() -> None:
    session = object()
    core = build_access_core(session, _settings(), locks=LocalEntityLock())

    assert core.catalog.permissions.session is session
    assert core.roles.roles.session is session
    assert core.assignments.user_roles.session is session
    assert core.pages.pages.session is session

"""Composition root.

Builds the access-control services for one unit of work from explicit
collaborators. Nothing here is cached at module level: the caller owns the
engine, the session factory, the lock backend and the Redis client, and
passes them in.
"""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import Settings
from .crud.page import PageRepository
from .crud.permission import PermissionRepository
from .crud.role import RoleRepository
from .crud.user_role import UserRoleRepository
from .domain.ports.page import PageRepository as PageRepositoryPort
from .domain.ports.permission import PermissionRepository as PermissionRepositoryPort
from .domain.ports.role import RoleRepository as RoleRepositoryPort
from .domain.ports.user_role import UserRoleRepository as UserRoleRepositoryPort
from .infrastructure.redis import RedisClient
from .services.access import (
    AccessEvaluator,
    AssignmentLedger,
    LocalEntityLock,
    PageRegistry,
    PermissionCatalog,
    RedisEntityLock,
    RoleStore,
)
from .services.access.locks import EntityLock


@dataclass
class AccessCore:
    catalog: PermissionCatalog
    roles: RoleStore
    assignments: AssignmentLedger
    evaluator: AccessEvaluator
    pages: PageRegistry


def build_entity_lock(settings: Settings, redis_client: RedisClient | None = None) -> EntityLock:
    if redis_client is None:
        return LocalEntityLock()
    return RedisEntityLock(
        redis_client,
        ttl_seconds=settings.lock_ttl_seconds,
        wait_seconds=settings.lock_wait_seconds,
    )


def assemble_access_core(
    permissions: PermissionRepositoryPort,
    roles: RoleRepositoryPort,
    user_roles: UserRoleRepositoryPort,
    pages: PageRepositoryPort,
    settings: Settings,
    *,
    locks: EntityLock,
) -> AccessCore:
    paging = {
        "default_per_page": settings.default_per_page,
        "max_per_page": settings.max_per_page,
    }
    return AccessCore(
        catalog=PermissionCatalog(
            permissions,
            roles,
            cascade_deletes=settings.cascade_deletes,
            bulk_atomic=settings.bulk_atomic,
            **paging,
        ),
        roles=RoleStore(
            roles,
            permissions,
            user_roles,
            pages,
            locks=locks,
            cascade_deletes=settings.cascade_deletes,
            **paging,
        ),
        assignments=AssignmentLedger(user_roles, roles),
        evaluator=AccessEvaluator(user_roles, roles),
        pages=PageRegistry(pages, user_roles, roles, locks=locks),
    )


def build_access_core(
    session: AsyncSession, settings: Settings, *, locks: EntityLock
) -> AccessCore:
    """Wire the SQLAlchemy repositories for one session into the services."""
    return assemble_access_core(
        PermissionRepository(session),
        RoleRepository(session),
        UserRoleRepository(session),
        PageRepository(session),
        settings,
        locks=locks,
    )


@asynccontextmanager
async def access_core_scope(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    *,
    locks: EntityLock,
) -> AsyncIterator[AccessCore]:
    async with session_factory() as session:
        yield build_access_core(session, settings, locks=locks)

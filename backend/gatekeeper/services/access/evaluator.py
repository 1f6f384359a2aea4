from __future__ import annotations

import logging
import uuid
from collections import defaultdict

from ...domain.ports.role import RoleData, RoleRepository
from ...domain.ports.user_role import UserRoleRepository
from ...domain.quota import UNLIMITED, Quota, most_generous

logger = logging.getLogger("gatekeeper.access.evaluator")


class AccessEvaluator:
    """Answers role and permission questions for a user.

    Every call reads the current assignments and grants; nothing is cached
    between calls. A user holding any superuser role is granted everything
    without looking at grants. Otherwise the user gets the union of what
    their roles grant: an unlimited grant anywhere makes the permission
    unlimited, else the largest cap across roles applies.
    """

    def __init__(self, user_roles: UserRoleRepository, roles: RoleRepository) -> None:
        self.user_roles = user_roles
        self.roles = roles

    async def _held_roles(self, user_id: uuid.UUID) -> list[RoleData]:
        return await self.user_roles.roles_of(user_id)

    async def _quotas_by_permission(self, held: list[RoleData]) -> dict[str, list[Quota]]:
        quotas: dict[str, list[Quota]] = defaultdict(list)
        for grant in await self.roles.list_grants([role.id for role in held]):
            quotas[grant.permission_name].append(grant.quota)
        return quotas

    async def is_superuser(self, user_id: uuid.UUID) -> bool:
        return any(role.is_superuser for role in await self._held_roles(user_id))

    async def has_role(self, user_id: uuid.UUID, name: str) -> bool:
        held = await self._held_roles(user_id)
        if any(role.is_superuser for role in held):
            return True
        return any(role.name == name for role in held)

    async def has_permission(self, user_id: uuid.UUID, name: str) -> bool:
        return await self.permission_limit(user_id, name) is not None

    async def permission_limit(self, user_id: uuid.UUID, name: str) -> Quota | None:
        """The limit the user may use the permission with, or None if not granted."""
        held = await self._held_roles(user_id)
        if any(role.is_superuser for role in held):
            logger.debug("superuser_bypass user=%s permission=%s", user_id, name)
            return UNLIMITED

        quotas = await self._quotas_by_permission(held)
        limit = most_generous(quotas.get(name, ()))
        if limit is None:
            logger.debug("permission_denied user=%s permission=%s", user_id, name)
        return limit

    async def effective_permissions(self, user_id: uuid.UUID) -> dict[str, Quota]:
        """Every permission granted through the user's roles with its unioned limit.

        For superusers these are all unlimited, but the catalog is not
        expanded: check is_superuser to know that everything else is granted too.
        """
        held = await self._held_roles(user_id)
        bypass = any(role.is_superuser for role in held)
        quotas = await self._quotas_by_permission(held)
        effective: dict[str, Quota] = {}
        for name, granted in quotas.items():
            limit = UNLIMITED if bypass else most_generous(granted)
            if limit is not None:
                effective[name] = limit
        return effective

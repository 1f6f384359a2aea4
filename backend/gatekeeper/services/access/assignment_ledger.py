from __future__ import annotations

import logging
import uuid

from ...domain.ports.role import RoleData, RoleRepository
from ...domain.ports.user_role import UserRoleRepository
from ...errors import NotFoundError

logger = logging.getLogger("gatekeeper.access.assignments")


class AssignmentLedger:
    """Which users hold which roles."""

    def __init__(self, user_roles: UserRoleRepository, roles: RoleRepository) -> None:
        self.user_roles = user_roles
        self.roles = roles

    async def _require_role(self, role_id: uuid.UUID) -> RoleData:
        role = await self.roles.get_by_id(role_id)
        if role is None:
            raise NotFoundError("role", role_id)
        return role

    async def assign(self, user_id: uuid.UUID, role_id: uuid.UUID) -> bool:
        """Give the user the role. Assigning a role already held succeeds.

        Returns:
            bool: True if a new assignment was stored, False if it existed
        """
        await self._require_role(role_id)
        try:
            created = await self.user_roles.add(user_id, role_id)
            await self.user_roles.commit()
        except Exception:
            await self.user_roles.rollback()
            raise

        if created:
            logger.info("role_assigned user=%s role=%s", user_id, role_id)
        else:
            logger.debug("role_already_assigned user=%s role=%s", user_id, role_id)
        return created

    async def revoke(self, user_id: uuid.UUID, role_id: uuid.UUID) -> bool:
        """Take the role away. Returns False if the user did not hold it."""
        await self._require_role(role_id)
        try:
            removed = await self.user_roles.remove(user_id, role_id)
            await self.user_roles.commit()
        except Exception:
            await self.user_roles.rollback()
            raise

        if removed:
            logger.info("role_revoked user=%s role=%s", user_id, role_id)
        return removed

    async def roles_of(self, user_id: uuid.UUID) -> list[RoleData]:
        return await self.user_roles.roles_of(user_id)

    async def users_of(self, role_id: uuid.UUID) -> list[uuid.UUID]:
        await self._require_role(role_id)
        return await self.user_roles.users_of(role_id)

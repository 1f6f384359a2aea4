from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Sequence

from ...domain.grants import GrantRecord, GrantSpec, SubjectType, ensure_grant_set
from ...domain.ports.page import PageRepository
from ...domain.ports.permission import PermissionRepository
from ...domain.ports.role import RoleData, RoleRepository
from ...domain.ports.user_role import UserRoleRepository
from ...domain.quota import Unlimited
from ...errors import ConflictError, DuplicateNameError, NotFoundError
from ...schemas.common import Paginated
from ...schemas.role import GrantOut, RoleResponse
from .locks import EntityLock, LocalEntityLock, role_grants_key
from .pagination import clean_name, page_window

logger = logging.getLogger("gatekeeper.access.roles")


def role_response(role: RoleData, grants: Sequence[GrantRecord]) -> RoleResponse:
    return RoleResponse(
        id=role.id,
        name=role.name,
        description=role.description,
        is_superuser=role.is_superuser,
        created_at=role.created_at,
        permissions_with_value=[GrantOut.from_record(grant) for grant in grants],
    )


class RoleStore:
    """Roles and their grant sets.

    A role's grants are only ever replaced as a whole. To change one grant a
    caller reads the role, edits its own copy of the full set and submits it
    through replace_grants; the store never merges partial sets. Replacements
    of the same role are serialized, the last one to run wins.
    """

    def __init__(
        self,
        roles: RoleRepository,
        permissions: PermissionRepository,
        user_roles: UserRoleRepository,
        pages: PageRepository,
        *,
        locks: EntityLock | None = None,
        cascade_deletes: bool = True,
        default_per_page: int = 20,
        max_per_page: int = 100,
    ) -> None:
        self.roles = roles
        self.permissions = permissions
        self.user_roles = user_roles
        self.pages = pages
        self.locks = locks if locks is not None else LocalEntityLock()
        self.cascade_deletes = cascade_deletes
        self.default_per_page = default_per_page
        self.max_per_page = max_per_page

    async def _validate_grants(self, grants: Sequence[GrantSpec]) -> list[GrantSpec]:
        grant_set = ensure_grant_set(grants)
        wanted = [grant.permission_id for grant in grant_set]
        found = {permission.id: permission for permission in await self.permissions.get_many(wanted)}
        for grant in grant_set:
            permission = found.get(grant.permission_id)
            if permission is None:
                raise NotFoundError("permission", grant.permission_id)
            if permission.requires_value and isinstance(grant.quota, Unlimited):
                logger.debug(
                    "grant_without_value permission=%s (treated as unlimited)",
                    permission.name,
                )
        return grant_set

    async def create(
        self,
        name: str,
        grants: Sequence[GrantSpec] = (),
        *,
        description: str | None = None,
        is_superuser: bool = False,
    ) -> RoleResponse:
        name = clean_name(name)
        if await self.roles.get_by_name(name) is not None:
            raise DuplicateNameError("role", name)
        grant_set = await self._validate_grants(grants)

        try:
            role = await self.roles.create(name, description, is_superuser)
            await self.roles.replace_grants(role.id, grant_set)
            await self.roles.commit()
        except Exception:
            await self.roles.rollback()
            raise

        logger.info(
            "role_created id=%s name=%s grants=%d superuser=%s",
            role.id,
            role.name,
            len(grant_set),
            role.is_superuser,
        )
        return await self.get(role.id)

    async def replace_grants(
        self, role_id: uuid.UUID, grants: Sequence[GrantSpec]
    ) -> RoleResponse:
        async with self.locks.hold(role_grants_key(role_id)):
            try:
                role = await self.roles.get_by_id(role_id, for_update=True)
                if role is None:
                    raise NotFoundError("role", role_id)
                grant_set = await self._validate_grants(grants)
                await self.roles.replace_grants(role_id, grant_set)
                await self.roles.commit()
            except Exception:
                await self.roles.rollback()
                raise

        logger.info("role_grants_replaced id=%s grants=%d", role_id, len(grant_set))
        return await self.get(role_id)

    async def delete(self, role_id: uuid.UUID) -> None:
        async with self.locks.hold(role_grants_key(role_id)):
            try:
                role = await self.roles.get_by_id(role_id, for_update=True)
                if role is None:
                    raise NotFoundError("role", role_id)

                if not self.cascade_deletes:
                    holders = await self.user_roles.count_for_role(role_id)
                    page_grants = await self.pages.pages_of([(SubjectType.ROLE, role_id)])
                    if holders or page_grants:
                        raise ConflictError(
                            f"Role {role_id} is still referenced",
                            details={
                                "entity": "role",
                                "id": str(role_id),
                                "assignments": holders,
                                "page_grants": len(page_grants),
                            },
                        )

                revoked = await self.user_roles.remove_for_role(role_id)
                await self.pages.remove_subject(SubjectType.ROLE, role_id)
                await self.roles.delete(role_id)
                await self.roles.commit()
            except Exception:
                await self.roles.rollback()
                raise

        logger.info("role_deleted id=%s assignments_removed=%d", role_id, revoked)

    async def get(self, role_id: uuid.UUID) -> RoleResponse:
        role = await self.roles.get_by_id(role_id)
        if role is None:
            raise NotFoundError("role", role_id)
        grants = await self.roles.list_grants([role_id])
        return role_response(role, grants)

    async def list(
        self,
        page: int = 1,
        per_page: int | None = None,
        filter: str | None = None,
    ) -> Paginated[RoleResponse]:
        window = page_window(
            page,
            per_page,
            default_per_page=self.default_per_page,
            max_per_page=self.max_per_page,
        )
        roles, total = await self.roles.list(
            offset=window.offset, limit=window.per_page, search=filter
        )
        by_role: dict[uuid.UUID, list[GrantRecord]] = defaultdict(list)
        for grant in await self.roles.list_grants([role.id for role in roles]):
            by_role[grant.role_id].append(grant)
        return Paginated[RoleResponse](
            items=[role_response(role, by_role[role.id]) for role in roles],
            total=total,
            page=window.page,
            per_page=window.per_page,
        )

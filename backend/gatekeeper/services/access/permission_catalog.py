from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from ...domain.ports.permission import PermissionRepository
from ...domain.ports.role import RoleRepository
from ...errors import ConflictError, DuplicateNameError, NotFoundError, ValidationError
from ...schemas.common import BulkResult, Paginated
from ...schemas.permission import PermissionResponse
from ...schemas.role import RoleSummary
from .bulk import BulkMutator
from .pagination import clean_name, page_window

logger = logging.getLogger("gatekeeper.access.catalog")


class PermissionCatalog:
    """Authoritative list of permissions.

    A permission's name is its key: it is unique regardless of case and can
    not be changed after creation. Deleting a permission removes it from
    every role that grants it, unless cascades are disabled, in which case a
    referenced permission can not be deleted.
    """

    def __init__(
        self,
        permissions: PermissionRepository,
        roles: RoleRepository,
        *,
        cascade_deletes: bool = True,
        bulk_atomic: bool = False,
        default_per_page: int = 20,
        max_per_page: int = 100,
    ) -> None:
        self.permissions = permissions
        self.roles = roles
        self.cascade_deletes = cascade_deletes
        self.bulk_atomic = bulk_atomic
        self.default_per_page = default_per_page
        self.max_per_page = max_per_page

    async def create(
        self,
        name: str,
        description: str | None = None,
        requires_value: bool = False,
    ) -> PermissionResponse:
        name = clean_name(name)
        if await self.permissions.get_by_name(name) is not None:
            raise DuplicateNameError("permission", name)

        try:
            permission = await self.permissions.create(name, description, requires_value)
            await self.permissions.commit()
        except Exception:
            await self.permissions.rollback()
            raise

        logger.info(
            "permission_created id=%s name=%s requires_value=%s",
            permission.id,
            permission.name,
            permission.requires_value,
        )
        return PermissionResponse.model_validate(permission)

    async def get(self, permission_id: uuid.UUID) -> PermissionResponse:
        permission = await self.permissions.get_by_id(permission_id)
        if permission is None:
            raise NotFoundError("permission", permission_id)
        return PermissionResponse.model_validate(permission)

    async def roles_granting(self, permission_id: uuid.UUID) -> list[RoleSummary]:
        """Roles whose grant set contains the permission."""
        await self.get(permission_id)
        roles = await self.roles.roles_granting(permission_id)
        return [RoleSummary.model_validate(role) for role in roles]

    async def update(
        self,
        permission_id: uuid.UUID,
        *,
        description: str | None,
        requires_value: bool,
        name: str | None = None,
    ) -> PermissionResponse:
        current = await self.permissions.get_by_id(permission_id)
        if current is None:
            raise NotFoundError("permission", permission_id)
        if name is not None and name != current.name:
            raise ValidationError("name", "permission names can not be changed")

        try:
            permission = await self.permissions.update(
                permission_id,
                description=description,
                requires_value=requires_value,
            )
            if permission is None:
                raise NotFoundError("permission", permission_id)
            await self.permissions.commit()
        except Exception:
            await self.permissions.rollback()
            raise

        logger.info(
            "permission_updated id=%s requires_value=%s", permission_id, requires_value
        )
        return PermissionResponse.model_validate(permission)

    async def delete(self, permission_id: uuid.UUID) -> None:
        if await self.permissions.get_by_id(permission_id) is None:
            raise NotFoundError("permission", permission_id)

        try:
            grant_count = await self.permissions.count_grants(permission_id)
            if grant_count and not self.cascade_deletes:
                raise ConflictError(
                    f"Permission {permission_id} is granted by {grant_count} role(s)",
                    details={"entity": "permission", "id": str(permission_id), "references": grant_count},
                )
            removed = await self.permissions.delete_grants(permission_id)
            await self.permissions.delete(permission_id)
            await self.permissions.commit()
        except Exception:
            await self.permissions.rollback()
            raise

        logger.info("permission_deleted id=%s grants_removed=%d", permission_id, removed)

    async def bulk_set_requires_value(
        self, permission_ids: Iterable[uuid.UUID], requires_value: bool
    ) -> BulkResult:
        async def apply(permission_id: uuid.UUID) -> None:
            updated = await self.permissions.set_requires_value(permission_id, requires_value)
            if updated is None:
                raise NotFoundError("permission", permission_id)

        mutator = BulkMutator(self.permissions, atomic=self.bulk_atomic)
        return await mutator.run(permission_ids, apply)

    async def list(
        self,
        page: int = 1,
        per_page: int | None = None,
        filter: str | None = None,
    ) -> Paginated[PermissionResponse]:
        window = page_window(
            page,
            per_page,
            default_per_page=self.default_per_page,
            max_per_page=self.max_per_page,
        )
        items, total = await self.permissions.list(
            offset=window.offset, limit=window.per_page, search=filter
        )
        return Paginated[PermissionResponse](
            items=[PermissionResponse.model_validate(item) for item in items],
            total=total,
            page=window.page,
            per_page=window.per_page,
        )

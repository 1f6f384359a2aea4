from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import store_errors, store_operation
from ..errors import DuplicateNameError
from ..models.permission import Permission
from ..models.role_permission import RolePermission
from .filters import substring_filter


class PermissionRepository:
    supports_transactions = True

    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation("permissions.create")
    async def create(self, name: str, description: str | None, requires_value: bool) -> Permission:
        permission = Permission(
            name=name,
            description=description,
            requires_value=requires_value,
        )
        self.session.add(permission)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateNameError("permission", name) from exc
        await self.session.refresh(permission)
        return permission

    @store_operation("permissions.get")
    async def get_by_id(self, permission_id: uuid.UUID) -> Permission | None:
        return await self.session.get(Permission, permission_id)

    @store_operation("permissions.get_by_name")
    async def get_by_name(self, name: str) -> Permission | None:
        result = await self.session.execute(
            select(Permission).where(func.lower(Permission.name) == name.lower())
        )
        return result.scalar_one_or_none()

    @store_operation("permissions.get_many")
    async def get_many(self, permission_ids: Sequence[uuid.UUID]) -> list[Permission]:
        if not permission_ids:
            return []
        result = await self.session.execute(
            select(Permission).where(Permission.id.in_(list(permission_ids)))
        )
        return list(result.scalars().all())

    @store_operation("permissions.update")
    async def update(
        self,
        permission_id: uuid.UUID,
        *,
        description: str | None,
        requires_value: bool,
    ) -> Permission | None:
        permission = await self.session.get(Permission, permission_id)
        if permission is None:
            return None
        permission.description = description
        permission.requires_value = requires_value
        await self.session.flush()
        return permission

    @store_operation("permissions.set_requires_value")
    async def set_requires_value(
        self, permission_id: uuid.UUID, requires_value: bool
    ) -> Permission | None:
        permission = await self.session.get(Permission, permission_id)
        if permission is None:
            return None
        permission.requires_value = requires_value
        await self.session.flush()
        return permission

    @store_operation("permissions.delete")
    async def delete(self, permission_id: uuid.UUID) -> bool:
        permission = await self.session.get(Permission, permission_id)
        if permission is None:
            return False
        await self.session.delete(permission)
        await self.session.flush()
        return True

    @store_operation("permissions.list")
    async def list(
        self, *, offset: int, limit: int, search: str | None = None
    ) -> tuple[list[Permission], int]:
        query = select(Permission)
        condition = substring_filter(search, Permission.name, Permission.description)
        if condition is not None:
            query = query.where(condition)

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )
        result = await self.session.execute(
            query.order_by(Permission.created_at, Permission.id).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), int(total or 0)

    @store_operation("permissions.count_grants")
    async def count_grants(self, permission_id: uuid.UUID) -> int:
        total = await self.session.scalar(
            select(func.count())
            .select_from(RolePermission)
            .where(RolePermission.permission_id == permission_id)
        )
        return int(total or 0)

    @store_operation("permissions.delete_grants")
    async def delete_grants(self, permission_id: uuid.UUID) -> int:
        result = await self.session.execute(
            delete(RolePermission).where(RolePermission.permission_id == permission_id)
        )
        return result.rowcount or 0

    async def commit(self) -> None:
        async with store_errors("commit"):
            await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

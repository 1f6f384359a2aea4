from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import store_errors, store_operation
from ..domain.grants import GrantRecord, GrantSpec
from ..domain.quota import quota_from_fields, quota_to_fields
from ..errors import DuplicateNameError, NotFoundError
from ..models.permission import Permission
from ..models.role import Role
from ..models.role_permission import RolePermission
from .filters import substring_filter


class RoleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation("roles.create")
    async def create(self, name: str, description: str | None, is_superuser: bool) -> Role:
        role = Role(
            name=name,
            description=description,
            is_superuser=is_superuser,
        )
        self.session.add(role)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateNameError("role", name) from exc
        await self.session.refresh(role)
        return role

    @store_operation("roles.get")
    async def get_by_id(self, role_id: uuid.UUID, *, for_update: bool = False) -> Role | None:
        if not for_update:
            return await self.session.get(Role, role_id)
        result = await self.session.execute(
            select(Role).where(Role.id == role_id).with_for_update()
        )
        return result.scalar_one_or_none()

    @store_operation("roles.get_by_name")
    async def get_by_name(self, name: str) -> Role | None:
        result = await self.session.execute(
            select(Role).where(func.lower(Role.name) == name.lower())
        )
        return result.scalar_one_or_none()

    @store_operation("roles.list")
    async def list(
        self, *, offset: int, limit: int, search: str | None = None
    ) -> tuple[list[Role], int]:
        query = select(Role)
        condition = substring_filter(search, Role.name, Role.description)
        if condition is not None:
            query = query.where(condition)

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )
        result = await self.session.execute(
            query.order_by(Role.created_at, Role.id).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), int(total or 0)

    @store_operation("roles.delete")
    async def delete(self, role_id: uuid.UUID) -> bool:
        role = await self.session.get(Role, role_id)
        if role is None:
            return False
        await self.session.delete(role)
        await self.session.flush()
        return True

    @store_operation("roles.list_grants")
    async def list_grants(self, role_ids: Sequence[uuid.UUID]) -> list[GrantRecord]:
        if not role_ids:
            return []
        result = await self.session.execute(
            select(RolePermission, Permission.name)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .where(RolePermission.role_id.in_(list(role_ids)))
            .order_by(RolePermission.created_at, Permission.name)
        )
        return [
            GrantRecord(
                role_id=row.role_id,
                permission_id=row.permission_id,
                permission_name=name,
                quota=quota_from_fields(
                    float(row.value) if row.value is not None else None,
                    row.limit_type,
                    row.limit_period,
                ),
            )
            for row, name in result.all()
        ]

    @store_operation("roles.replace_grants")
    async def replace_grants(self, role_id: uuid.UUID, grants: Sequence[GrantSpec]) -> None:
        permission_ids = [grant.permission_id for grant in grants]
        if permission_ids:
            # FOR SHARE holds off permission deletes until the new grants commit
            result = await self.session.execute(
                select(Permission.id)
                .where(Permission.id.in_(permission_ids))
                .with_for_update(read=True)
            )
            present = set(result.scalars().all())
            for permission_id in permission_ids:
                if permission_id not in present:
                    raise NotFoundError("permission", permission_id)

        await self.session.execute(
            delete(RolePermission).where(RolePermission.role_id == role_id)
        )
        for grant in grants:
            value, limit_type, limit_period = quota_to_fields(grant.quota)
            self.session.add(
                RolePermission(
                    role_id=role_id,
                    permission_id=grant.permission_id,
                    value=value,
                    limit_type=limit_type.value,
                    limit_period=limit_period,
                )
            )
        await self.session.flush()

    @store_operation("roles.roles_granting")
    async def roles_granting(self, permission_id: uuid.UUID) -> list[Role]:
        result = await self.session.execute(
            select(Role)
            .join(RolePermission, RolePermission.role_id == Role.id)
            .where(RolePermission.permission_id == permission_id)
            .order_by(Role.created_at, Role.id)
        )
        return list(result.scalars().all())

    async def commit(self) -> None:
        async with store_errors("commit"):
            await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import store_errors, store_operation
from ..models.role import Role
from ..models.user_role import UserRole


class UserRoleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get(self, user_id: uuid.UUID, role_id: uuid.UUID) -> UserRole | None:
        result = await self.session.execute(
            select(UserRole).where(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id,
            )
        )
        return result.scalar_one_or_none()

    @store_operation("user_roles.add")
    async def add(self, user_id: uuid.UUID, role_id: uuid.UUID) -> bool:
        if await self._get(user_id, role_id) is not None:
            return False
        try:
            # A concurrent assign may win the unique constraint; that is still success.
            async with self.session.begin_nested():
                self.session.add(UserRole(user_id=user_id, role_id=role_id))
                await self.session.flush()
        except IntegrityError:
            return False
        return True

    @store_operation("user_roles.remove")
    async def remove(self, user_id: uuid.UUID, role_id: uuid.UUID) -> bool:
        user_role = await self._get(user_id, role_id)
        if user_role is None:
            return False
        await self.session.delete(user_role)
        await self.session.flush()
        return True

    @store_operation("user_roles.roles_of")
    async def roles_of(self, user_id: uuid.UUID) -> list[Role]:
        result = await self.session.execute(
            select(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
            .order_by(UserRole.granted_at, Role.name)
        )
        return list(result.scalars().all())

    @store_operation("user_roles.users_of")
    async def users_of(self, role_id: uuid.UUID) -> list[uuid.UUID]:
        result = await self.session.execute(
            select(UserRole.user_id)
            .where(UserRole.role_id == role_id)
            .order_by(UserRole.granted_at, UserRole.user_id)
        )
        return list(result.scalars().all())

    @store_operation("user_roles.count_for_role")
    async def count_for_role(self, role_id: uuid.UUID) -> int:
        total = await self.session.scalar(
            select(func.count()).select_from(UserRole).where(UserRole.role_id == role_id)
        )
        return int(total or 0)

    @store_operation("user_roles.remove_for_role")
    async def remove_for_role(self, role_id: uuid.UUID) -> int:
        result = await self.session.execute(
            delete(UserRole).where(UserRole.role_id == role_id)
        )
        return result.rowcount or 0

    async def commit(self) -> None:
        async with store_errors("commit"):
            await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

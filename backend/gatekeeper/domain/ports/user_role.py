from __future__ import annotations

import uuid
from typing import Protocol

from .role import RoleData


class UserRoleRepository(Protocol):
    async def add(self, user_id: uuid.UUID, role_id: uuid.UUID) -> bool:
        """Store the pair; False when it already existed."""
        ...

    async def remove(self, user_id: uuid.UUID, role_id: uuid.UUID) -> bool:
        ...

    async def roles_of(self, user_id: uuid.UUID) -> list[RoleData]:
        """Roles held by the user, in assignment order."""
        ...

    async def users_of(self, role_id: uuid.UUID) -> list[uuid.UUID]:
        ...

    async def count_for_role(self, role_id: uuid.UUID) -> int:
        ...

    async def remove_for_role(self, role_id: uuid.UUID) -> int:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...

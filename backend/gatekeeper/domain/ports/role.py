from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
import uuid
from typing import Protocol

from ..grants import GrantRecord, GrantSpec


class RoleData(Protocol):
    id: uuid.UUID
    name: str
    description: str | None
    is_superuser: bool
    created_at: datetime


class RoleRepository(Protocol):
    async def create(
        self, name: str, description: str | None, is_superuser: bool
    ) -> RoleData:
        ...

    async def get_by_id(
        self, role_id: uuid.UUID, *, for_update: bool = False
    ) -> RoleData | None:
        ...

    async def get_by_name(self, name: str) -> RoleData | None:
        """Case-insensitive lookup."""
        ...

    async def list(
        self, *, offset: int, limit: int, search: str | None = None
    ) -> tuple[list[RoleData], int]:
        ...

    async def delete(self, role_id: uuid.UUID) -> bool:
        ...

    async def list_grants(self, role_ids: Sequence[uuid.UUID]) -> list[GrantRecord]:
        ...

    async def replace_grants(
        self, role_id: uuid.UUID, grants: Sequence[GrantSpec]
    ) -> None:
        ...

    async def roles_granting(self, permission_id: uuid.UUID) -> list[RoleData]:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
import uuid
from typing import Protocol


class PermissionData(Protocol):
    id: uuid.UUID
    name: str
    description: str | None
    requires_value: bool
    created_at: datetime


class PermissionRepository(Protocol):
    supports_transactions: bool

    async def create(
        self, name: str, description: str | None, requires_value: bool
    ) -> PermissionData:
        ...

    async def get_by_id(self, permission_id: uuid.UUID) -> PermissionData | None:
        ...

    async def get_by_name(self, name: str) -> PermissionData | None:
        """Case-insensitive lookup."""
        ...

    async def get_many(self, permission_ids: Sequence[uuid.UUID]) -> list[PermissionData]:
        ...

    async def update(
        self,
        permission_id: uuid.UUID,
        *,
        description: str | None,
        requires_value: bool,
    ) -> PermissionData | None:
        ...

    async def set_requires_value(
        self, permission_id: uuid.UUID, requires_value: bool
    ) -> PermissionData | None:
        ...

    async def delete(self, permission_id: uuid.UUID) -> bool:
        ...

    async def list(
        self, *, offset: int, limit: int, search: str | None = None
    ) -> tuple[list[PermissionData], int]:
        ...

    async def count_grants(self, permission_id: uuid.UUID) -> int:
        ...

    async def delete_grants(self, permission_id: uuid.UUID) -> int:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...

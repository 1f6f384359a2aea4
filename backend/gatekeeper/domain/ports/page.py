from __future__ import annotations

from collections.abc import Sequence
import uuid
from typing import Protocol

from ..grants import SubjectType


class PageData(Protocol):
    id: uuid.UUID
    path: str
    label: str
    parent_id: uuid.UUID | None


Subject = tuple[SubjectType, uuid.UUID]


class PageRepository(Protocol):
    async def create_page(
        self, path: str, label: str, parent_id: uuid.UUID | None
    ) -> PageData:
        ...

    async def get_page(self, page_id: uuid.UUID) -> PageData | None:
        ...

    async def get_page_by_path(self, path: str) -> PageData | None:
        ...

    async def get_pages(self, page_ids: Sequence[uuid.UUID]) -> list[PageData]:
        ...

    async def list_pages(self, search: str | None = None) -> list[PageData]:
        ...

    async def replace_grants(
        self,
        subject_type: SubjectType,
        subject_id: uuid.UUID,
        page_ids: Sequence[uuid.UUID],
    ) -> None:
        ...

    async def pages_of(self, subjects: Sequence[Subject]) -> list[PageData]:
        ...

    async def has_grant(self, page_id: uuid.UUID, subjects: Sequence[Subject]) -> bool:
        ...

    async def remove_subject(self, subject_type: SubjectType, subject_id: uuid.UUID) -> int:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...

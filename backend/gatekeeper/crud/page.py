import uuid
from collections.abc import Sequence

from sqlalchemy import and_, delete, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import store_errors, store_operation
from ..domain.grants import SubjectType
from ..domain.ports.page import Subject
from ..models.page import Page
from ..models.page_grant import PageGrant
from .filters import substring_filter


def _subject_clause(subjects: Sequence[Subject]):
    return or_(
        *(
            and_(
                PageGrant.subject_type == subject_type.value,
                PageGrant.subject_id == subject_id,
            )
            for subject_type, subject_id in subjects
        )
    )


class PageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation("pages.create")
    async def create_page(
        self, path: str, label: str, parent_id: uuid.UUID | None
    ) -> Page:
        page = Page(path=path, label=label, parent_id=parent_id)
        self.session.add(page)
        await self.session.flush()
        await self.session.refresh(page)
        return page

    @store_operation("pages.get")
    async def get_page(self, page_id: uuid.UUID) -> Page | None:
        return await self.session.get(Page, page_id)

    @store_operation("pages.get_by_path")
    async def get_page_by_path(self, path: str) -> Page | None:
        result = await self.session.execute(select(Page).where(Page.path == path))
        return result.scalar_one_or_none()

    @store_operation("pages.get_many")
    async def get_pages(self, page_ids: Sequence[uuid.UUID]) -> list[Page]:
        if not page_ids:
            return []
        result = await self.session.execute(
            select(Page).where(Page.id.in_(list(page_ids)))
        )
        return list(result.scalars().all())

    @store_operation("pages.list")
    async def list_pages(self, search: str | None = None) -> list[Page]:
        query = select(Page)
        condition = substring_filter(search, Page.label, Page.path)
        if condition is not None:
            query = query.where(condition)
        result = await self.session.execute(query.order_by(Page.created_at, Page.path))
        return list(result.scalars().all())

    @store_operation("page_grants.replace")
    async def replace_grants(
        self,
        subject_type: SubjectType,
        subject_id: uuid.UUID,
        page_ids: Sequence[uuid.UUID],
    ) -> None:
        await self.session.execute(
            delete(PageGrant).where(
                PageGrant.subject_type == subject_type.value,
                PageGrant.subject_id == subject_id,
            )
        )
        self.session.add_all(
            PageGrant(subject_type=subject_type.value, subject_id=subject_id, page_id=page_id)
            for page_id in page_ids
        )
        await self.session.flush()

    @store_operation("page_grants.pages_of")
    async def pages_of(self, subjects: Sequence[Subject]) -> list[Page]:
        if not subjects:
            return []
        result = await self.session.execute(
            select(Page)
            .where(
                Page.id.in_(select(PageGrant.page_id).where(_subject_clause(subjects)))
            )
            .order_by(Page.created_at, Page.path)
        )
        return list(result.scalars().all())

    @store_operation("page_grants.has_grant")
    async def has_grant(self, page_id: uuid.UUID, subjects: Sequence[Subject]) -> bool:
        if not subjects:
            return False
        result = await self.session.scalar(
            select(
                exists().where(
                    PageGrant.page_id == page_id,
                    _subject_clause(subjects),
                )
            )
        )
        return bool(result)

    @store_operation("page_grants.remove_subject")
    async def remove_subject(self, subject_type: SubjectType, subject_id: uuid.UUID) -> int:
        result = await self.session.execute(
            delete(PageGrant).where(
                PageGrant.subject_type == subject_type.value,
                PageGrant.subject_id == subject_id,
            )
        )
        return result.rowcount or 0

    async def commit(self) -> None:
        async with store_errors("commit"):
            await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

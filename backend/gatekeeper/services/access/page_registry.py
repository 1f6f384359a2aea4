from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from ...domain.grants import SubjectType
from ...domain.ports.page import PageRepository, Subject
from ...domain.ports.role import RoleRepository
from ...domain.ports.user_role import UserRoleRepository
from ...errors import DuplicateNameError, NotFoundError, ValidationError
from ...schemas.page import PageResponse
from .locks import EntityLock, LocalEntityLock, page_grants_key, role_grants_key
from .pagination import clean_name

logger = logging.getLogger("gatekeeper.access.pages")


def _subject_type(value: SubjectType | str) -> SubjectType:
    try:
        return SubjectType(value)
    except ValueError as exc:
        raise ValidationError("subject_type", "must be 'user' or 'role'") from exc


class PageRegistry:
    """Access list of UI pages, granted to users directly or through roles.

    Independent of permissions. A page is allowed when it is in the user's own
    page set or in the set of any role the user holds. Every page, child pages
    included, needs its own entry: granting a parent grants nothing below it.
    """

    def __init__(
        self,
        pages: PageRepository,
        user_roles: UserRoleRepository,
        roles: RoleRepository,
        *,
        locks: EntityLock | None = None,
    ) -> None:
        self.pages = pages
        self.user_roles = user_roles
        self.roles = roles
        self.locks = locks if locks is not None else LocalEntityLock()

    async def create_page(
        self, path: str, label: str, parent_id: uuid.UUID | None = None
    ) -> PageResponse:
        path = clean_name(path, "path")
        label = clean_name(label, "label")
        if await self.pages.get_page_by_path(path) is not None:
            raise DuplicateNameError("page", path)
        if parent_id is not None:
            parent = await self.pages.get_page(parent_id)
            if parent is None:
                raise NotFoundError("page", parent_id)
            if parent.parent_id is not None:
                raise ValidationError("parent_id", "pages nest only one level deep")

        try:
            page = await self.pages.create_page(path, label, parent_id)
            await self.pages.commit()
        except Exception:
            await self.pages.rollback()
            raise

        logger.info("page_created id=%s path=%s parent=%s", page.id, page.path, parent_id)
        return PageResponse.model_validate(page)

    async def list_pages(self, filter: str | None = None) -> list[PageResponse]:
        return [PageResponse.model_validate(page) for page in await self.pages.list_pages(filter)]

    @asynccontextmanager
    async def _hold_subject(self, kind: SubjectType, subject_id: uuid.UUID) -> AsyncIterator[None]:
        # Role deletes hold the role key, so a role's page set takes it first.
        if kind == SubjectType.ROLE:
            async with self.locks.hold(role_grants_key(subject_id)):
                async with self.locks.hold(page_grants_key(kind, subject_id)):
                    yield
        else:
            async with self.locks.hold(page_grants_key(kind, subject_id)):
                yield

    async def grant_pages(
        self,
        subject_type: SubjectType | str,
        subject_id: uuid.UUID,
        page_ids: Iterable[uuid.UUID],
    ) -> list[PageResponse]:
        """Replace the subject's whole page set with page_ids."""
        kind = _subject_type(subject_type)
        wanted = list(dict.fromkeys(page_ids))

        async with self._hold_subject(kind, subject_id):
            try:
                if (
                    kind == SubjectType.ROLE
                    and await self.roles.get_by_id(subject_id, for_update=True) is None
                ):
                    raise NotFoundError("role", subject_id)
                found = {page.id for page in await self.pages.get_pages(wanted)}
                for page_id in wanted:
                    if page_id not in found:
                        raise NotFoundError("page", page_id)
                await self.pages.replace_grants(kind, subject_id, wanted)
                await self.pages.commit()
            except Exception:
                await self.pages.rollback()
                raise

        logger.info(
            "page_grants_replaced subject=%s:%s pages=%d", kind.value, subject_id, len(wanted)
        )
        return await self.pages_of(kind, subject_id)

    async def pages_of(
        self, subject_type: SubjectType | str, subject_id: uuid.UUID
    ) -> list[PageResponse]:
        kind = _subject_type(subject_type)
        pages = await self.pages.pages_of([(kind, subject_id)])
        return [PageResponse.model_validate(page) for page in pages]

    async def _subjects_for(self, user_id: uuid.UUID) -> list[Subject]:
        subjects: list[Subject] = [(SubjectType.USER, user_id)]
        for role in await self.user_roles.roles_of(user_id):
            subjects.append((SubjectType.ROLE, role.id))
        return subjects

    async def is_page_allowed(self, user_id: uuid.UUID, page_path: str) -> bool:
        page = await self.pages.get_page_by_path(page_path)
        if page is None:
            logger.debug("page_unknown user=%s path=%s", user_id, page_path)
            return False
        allowed = await self.pages.has_grant(page.id, await self._subjects_for(user_id))
        if not allowed:
            logger.debug("page_denied user=%s path=%s", user_id, page_path)
        return allowed

    async def allowed_pages(self, user_id: uuid.UUID) -> list[PageResponse]:
        """Every page the user may open, directly or through a role."""
        pages = await self.pages.pages_of(await self._subjects_for(user_id))
        return [PageResponse.model_validate(page) for page in pages]

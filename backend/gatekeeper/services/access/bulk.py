from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

from ...errors import AppError, InternalError, StoreUnavailableError
from ...schemas.common import BulkFailure, BulkResult

logger = logging.getLogger("gatekeeper.access.bulk")

BulkOperation = Callable[[uuid.UUID], Awaitable[object]]

ROLLED_BACK = "ROLLED_BACK"
NOT_ATTEMPTED = "NOT_ATTEMPTED"


class TransactionalStore(Protocol):
    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...


class BulkMutator:
    """Applies one operation to many ids and reports the outcome of every id.

    With ``atomic=True`` on a store that supports transactions the whole batch
    commits or rolls back together. Otherwise each id is committed on its own
    and the report lists exactly which ids were applied.

    A batch that has started is shielded from caller cancellation: it runs to
    the end so the stored state and the report always agree. A cancelled
    caller waits for the batch to settle before the cancellation propagates,
    and the report stays available as ``last_result``.
    """

    def __init__(self, store: TransactionalStore, *, atomic: bool = False) -> None:
        self.store = store
        self.atomic = atomic and bool(getattr(store, "supports_transactions", False))
        self.last_result: BulkResult | None = None

    async def run(self, ids: Iterable[uuid.UUID], operation: BulkOperation) -> BulkResult:
        targets = list(dict.fromkeys(ids))
        if self.atomic:
            work = self._run_atomic(targets, operation)
        else:
            work = self._run_sequential(targets, operation)
        task = asyncio.ensure_future(work)
        try:
            result = await asyncio.shield(task)
        except asyncio.CancelledError:
            # The caller's session must outlive the batch, so unwind only once it has settled.
            result = await self._settle(task)
            self.last_result = result
            self._log_done(result, targets, interrupted=True)
            raise
        self.last_result = result
        self._log_done(result, targets, interrupted=False)
        return result

    @staticmethod
    async def _settle(task: asyncio.Future[BulkResult]) -> BulkResult:
        while True:
            try:
                return await asyncio.shield(task)
            except asyncio.CancelledError:
                if task.done():
                    raise

    def _log_done(self, result: BulkResult, targets: list[uuid.UUID], *, interrupted: bool) -> None:
        logger.info(
            "bulk_done atomic=%s interrupted=%s total=%d succeeded=%d failed=%d",
            self.atomic,
            interrupted,
            len(targets),
            len(result.succeeded),
            len(result.failed),
        )

    async def _run_sequential(
        self, targets: list[uuid.UUID], operation: BulkOperation
    ) -> BulkResult:
        result = BulkResult()
        for index, item_id in enumerate(targets):
            try:
                await operation(item_id)
                await self.store.commit()
            except AppError as exc:
                await self.store.rollback()
                logger.warning("bulk_item_failed id=%s error=%s", item_id, exc.code)
                result.failed.append(BulkFailure.from_error(item_id, exc))
                if isinstance(exc, StoreUnavailableError):
                    self._skip_rest(result, targets[index + 1:], exc)
                    break
                continue
            except Exception as exc:
                await self.store.rollback()
                logger.exception("bulk_item_crashed id=%s", item_id)
                error = InternalError(f"Unexpected error: {exc}")
                result.failed.append(BulkFailure.from_error(item_id, error))
                self._skip_rest(result, targets[index + 1:], error)
                break
            result.succeeded.append(item_id)
        return result

    async def _run_atomic(
        self, targets: list[uuid.UUID], operation: BulkOperation
    ) -> BulkResult:
        applied: list[uuid.UUID] = []
        for index, item_id in enumerate(targets):
            try:
                await operation(item_id)
            except Exception as exc:
                await self.store.rollback()
                error = exc if isinstance(exc, AppError) else InternalError(f"Unexpected error: {exc}")
                if not isinstance(exc, AppError):
                    logger.exception("bulk_item_crashed id=%s", item_id)
                logger.warning(
                    "bulk_rolled_back id=%s error=%s applied=%d", item_id, error.code, len(applied)
                )
                result = BulkResult(failed=[BulkFailure.from_error(item_id, error)])
                result.failed.extend(
                    BulkFailure(
                        id=done_id,
                        error=ROLLED_BACK,
                        message=f"Rolled back because {item_id} failed",
                    )
                    for done_id in applied
                )
                self._skip_rest(result, targets[index + 1:], error)
                return result
            applied.append(item_id)

        try:
            await self.store.commit()
        except AppError as exc:
            await self.store.rollback()
            logger.warning("bulk_commit_failed error=%s", exc.code)
            return BulkResult(
                failed=[BulkFailure.from_error(item_id, exc) for item_id in targets]
            )
        return BulkResult(succeeded=applied)

    @staticmethod
    def _skip_rest(result: BulkResult, rest: list[uuid.UUID], cause: AppError) -> None:
        result.failed.extend(
            BulkFailure(
                id=item_id,
                error=NOT_ATTEMPTED,
                message=f"Not attempted after {cause.code}",
            )
            for item_id in rest
        )

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import TypeVar

logger = logging.getLogger("gatekeeper.access.queries")

T = TypeVar("T")


class SupersedingQueries:
    """Runs read queries so that a newer query from the same caller cancels the older one.

    Only for side-effect free reads such as list and search calls. The
    superseded caller gets asyncio.CancelledError.
    """

    def __init__(self) -> None:
        self._running: dict[Hashable, asyncio.Task] = {}

    async def run(self, caller: Hashable, query: Callable[[], Awaitable[T]]) -> T:
        previous = self._running.get(caller)
        if previous is not None and not previous.done():
            logger.debug("query_superseded caller=%s", caller)
            previous.cancel()

        task = asyncio.ensure_future(query())
        self._running[caller] = task
        try:
            return await task
        finally:
            if self._running.get(caller) is task:
                del self._running[caller]

    def in_flight(self, caller: Hashable) -> bool:
        task = self._running.get(caller)
        return task is not None and not task.done()

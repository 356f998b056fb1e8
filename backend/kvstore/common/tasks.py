"""
Lazy Expiration Task Runner

Reads and lists that encounter an expired record schedule its physical delete
here. Deletes run in the background on a bounded number of concurrent tasks;
the caller never waits for them and never sees their failures. A failed delete
leaves the stale row in place, and the next scan that meets it schedules it again.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class LazyDeleter:
    """Bounded fire-and-forget runner for lazy-expiration deletes"""

    def __init__(self, concurrency: int = 16):
        """
        Initialize runner

        Args:
            concurrency: Maximum number of deletes running at the same time
        """
        self._semaphore = asyncio.Semaphore(max(concurrency, 1))
        self._tasks: dict[Hashable, asyncio.Task] = {}

    @property
    def pending(self) -> int:
        """Number of scheduled deletes that have not finished"""
        return len(self._tasks)

    def schedule(self, ident: Hashable, delete: Callable[[], Awaitable[Any]]) -> None:
        """
        Schedule a delete without waiting for it

        A delete already in flight for the same ``ident`` is not scheduled twice.

        Args:
            ident: Identity of the stored row, e.g. ``(database, table, key)``
            delete: Zero-argument coroutine function performing the delete
        """
        if ident in self._tasks:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, lazy delete of {ident} skipped")
            return

        task = loop.create_task(self._run(ident, delete))
        self._tasks[ident] = task
        task.add_done_callback(lambda done: self._forget(ident, done))

    def _forget(self, ident: Hashable, task: asyncio.Task) -> None:
        if self._tasks.get(ident) is task:
            del self._tasks[ident]

    async def _run(self, ident: Hashable, delete: Callable[[], Awaitable[Any]]) -> None:
        async with self._semaphore:
            try:
                await delete()
                logger.debug(f"Lazily deleted expired record {ident}")
            except Exception as e:
                logger.warning(f"Lazy delete of expired record {ident} failed: {str(e)}")

    async def drain(self) -> None:
        """Wait until every scheduled delete has finished"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

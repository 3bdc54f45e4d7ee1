"""
Fire-and-forget background operations.

Used for best-effort store writes that the caller does not wait on:
forget(), the write-back inside remember() and the EXPIRE after
multiput(). Failures are dropped: logged at DEBUG and counted in
BackgroundTasks.dropped, never raised.
"""

import asyncio
import logging
from typing import Awaitable, Set

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """
    Tracks pending fire-and-forget tasks.

    Holding a reference to each task keeps it from being garbage
    collected before it finishes, and lets drain() wait for all of them.

    Attributes:
        dropped: Number of background operations whose failure was dropped
    """

    def __init__(self):
        self._pending: Set[asyncio.Task] = set()
        self.dropped = 0

    def spawn(self, operation: Awaitable, description: str) -> asyncio.Task:
        """
        Schedule operation on the running loop.

        Returns:
            The task; awaiting it always yields None
        """
        task = asyncio.ensure_future(self._run(operation, description))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, operation: Awaitable, description: str) -> None:
        try:
            await operation
        except Exception as e:
            self.dropped += 1
            logger.debug(f"Dropped failure of background {description}: {e}")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every scheduled task has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

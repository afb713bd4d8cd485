"""Detached background work whose failures are logged and dropped."""

import asyncio
import logging
from typing import Awaitable

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """
    Owner of fire-and-forget tasks such as title generation and share links.

    Failures never reach the caller that spawned the task. ``aclose()``
    cancels whatever is still running so instances can be torn down cleanly.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Awaitable[object], name: str) -> asyncio.Task:
        task = asyncio.ensure_future(self._run(coro, name))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Awaitable[object], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("Background task %s failed: %s", name, e)

    async def join(self) -> None:
        """Wait for every task spawned so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def __len__(self) -> int:
        return len(self._tasks)

"""
Per-session generation lock.

At most one generation runs per session. A second ``chat()`` on a busy
session fails immediately with ``BusyError``; callers decide whether to
retry. Each held lock carries an ``AbortHandle`` that cancels the running
generation.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator

from .exceptions import BusyError

logger = logging.getLogger(__name__)


class AbortHandle:
    """
    Abort signal for one generation.

    The signal is threaded through the model call and every tool execution.
    The generation task may be attached so that ``abort()`` also cancels it.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def abort(self) -> None:
        """Signal abort and cancel the attached task, if any."""
        if self._event.is_set():
            return
        self._event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Block until the handle is aborted."""
        await self._event.wait()

    def attach(self, task: asyncio.Task) -> None:
        """Bind the generation task; an already aborted handle cancels it at once."""
        self._task = task
        if self._event.is_set():
            task.cancel()

    def detach(self) -> None:
        self._task = None


class SessionLock:
    """Map of session id to the abort handle of its in-flight generation."""

    def __init__(self) -> None:
        self._pending: dict[str, AbortHandle] = {}

    @contextmanager
    def acquire(self, session_id: str) -> Iterator[AbortHandle]:
        """
        Hold the session for the duration of the block.

        Args:
            session_id: Session to lock

        Yields:
            The abort handle for this generation

        Raises:
            BusyError: If the session already has a generation in flight
        """
        if session_id in self._pending:
            raise BusyError(session_id)
        handle = AbortHandle(session_id)
        self._pending[session_id] = handle
        logger.debug("locking session %s", session_id)
        try:
            yield handle
        finally:
            handle.detach()
            if self._pending.get(session_id) is handle:
                del self._pending[session_id]
            logger.debug("unlocking session %s", session_id)

    def abort(self, session_id: str) -> bool:
        """
        Abort the in-flight generation of a session.

        Returns:
            True if a generation was running
        """
        handle = self._pending.get(session_id)
        if handle is None:
            return False
        logger.info("Aborting session %s", session_id)
        handle.abort()
        return True

    def is_busy(self, session_id: str) -> bool:
        return session_id in self._pending

    def busy(self) -> list[str]:
        return list(self._pending)

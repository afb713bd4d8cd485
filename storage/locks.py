"""
Async reader/writer locks.

``RWLock`` admits many concurrent readers or one writer. Waiting writers
block new readers so a steady stream of reads cannot starve a write.
``NamedLocks`` hands out one ``RWLock`` per name and forgets it again once
nobody holds or waits on it.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class RWLock:
    """Reader/writer lock for coroutines on a single event loop."""

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writing(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._waiting_writers == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            self._waiting_writers += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            finally:
                self._waiting_writers -= 1
                # Readers parked behind a cancelled writer must re-check.
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class NamedLocks:
    """Registry of reader/writer locks keyed by name."""

    def __init__(self) -> None:
        self._locks: dict[str, RWLock] = {}
        self._refs: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, name: str) -> RWLock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = RWLock()
        self._refs[name] = self._refs.get(name, 0) + 1
        return lock

    def _release(self, name: str) -> None:
        self._refs[name] -= 1
        if self._refs[name] == 0:
            del self._refs[name]
            del self._locks[name]

    @asynccontextmanager
    async def read(self, name: str) -> AsyncIterator[None]:
        lock = self._checkout(name)
        try:
            async with lock.read():
                yield
        finally:
            self._release(name)

    @asynccontextmanager
    async def write(self, name: str) -> AsyncIterator[None]:
        lock = self._checkout(name)
        try:
            async with lock.write():
                yield
        finally:
            self._release(name)

"""
Keyed JSON document storage.

Every document lives in its own file: the key ``("session", "info", id)``
maps to ``<root>/session/info/<id>.json``. Plain reads and writes only lock
their own file, so unrelated keys proceed in parallel. ``update`` serializes
all read-modify-write cycles behind one global lock.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Sequence

from core.events import STORAGE_WRITE, Event, EventBus, NullEventBus

from .locks import NamedLocks
from .migrations import MIGRATIONS, Migration, run_migrations

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"
GLOBAL_UPDATE_LOCK = "storage"

Key = Sequence[str]


class StorageEngine:
    """
    JSON document store rooted at a directory.

    Migrations run lazily on first use. Every successful ``write`` and
    ``update`` publishes a ``storage.write`` event.
    """

    def __init__(
        self,
        root: Path | str,
        event_bus: EventBus | None = None,
        migrations: list[Migration] | None = None,
    ):
        self.root = Path(root)
        self.event_bus = event_bus or NullEventBus()
        self._migrations = MIGRATIONS if migrations is None else migrations
        self._locks = NamedLocks()
        self._init_lock = asyncio.Lock()
        self._ready = False

    async def _ensure_ready(self) -> None:
        if self._ready:
            return
        async with self._init_lock:
            if self._ready:
                return
            await run_migrations(self.root, self._migrations)
            self._ready = True

    def path_for(self, key: Key) -> Path:
        """Map a key to its document path."""
        if not key:
            raise ValueError("Storage key must have at least one segment")
        for segment in key:
            if not segment or segment in (".", "..") or "/" in segment or os.sep in segment:
                raise ValueError(f"Invalid storage key segment: {segment!r}")
        *parents, last = key
        return self.root.joinpath(*parents, last + DOCUMENT_SUFFIX)

    # =========================================================================
    # Document operations
    # =========================================================================

    async def read(self, key: Key) -> Any:
        """
        Read a document.

        Raises:
            FileNotFoundError: If no document exists for the key
            json.JSONDecodeError: If the document is corrupt
        """
        await self._ensure_ready()
        target = self.path_for(key)
        async with self._locks.read(str(target)):
            return await asyncio.to_thread(_read_json, target)

    async def write(self, key: Key, content: Any) -> None:
        """Replace the document at ``key``."""
        await self._ensure_ready()
        target = self.path_for(key)
        async with self._locks.write(str(target)):
            await asyncio.to_thread(_write_json, target, content)
        await self._publish(key, content)

    async def update(self, key: Key, fn: Callable[[Any], None]) -> Any:
        """
        Read, mutate in place with ``fn``, and write back a document.

        Args:
            key: Document key
            fn: Callback that mutates the deserialized document

        Returns:
            The updated document
        """
        await self._ensure_ready()
        target = self.path_for(key)
        async with self._locks.write(GLOBAL_UPDATE_LOCK):
            async with self._locks.write(str(target)):
                content = await asyncio.to_thread(_read_json, target)
                fn(content)
                await asyncio.to_thread(_write_json, target, content)
        await self._publish(key, content)
        return content

    async def remove(self, key: Key) -> None:
        """Delete a document; a missing document is not an error."""
        await self._ensure_ready()
        target = self.path_for(key)
        async with self._locks.write(str(target)):
            await asyncio.to_thread(target.unlink, True)

    async def list(self, prefix: Key) -> list[tuple[str, ...]]:
        """
        List the keys of every document under ``prefix``.

        Returns:
            Sorted key tuples; empty when the prefix directory does not exist
        """
        await self._ensure_ready()
        base = self.root.joinpath(*prefix)
        return await asyncio.to_thread(_scan, base, tuple(prefix))

    async def _publish(self, key: Key, content: Any) -> None:
        await self.event_bus.publish(
            Event(type=STORAGE_WRITE, properties={"key": list(key), "content": content})
        )


def _read_json(target: Path) -> Any:
    with target.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(target: Path, content: Any) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    temp = target.with_name(target.name + TEMP_SUFFIX)
    with temp.open("w", encoding="utf-8") as f:
        json.dump(content, f, indent=2)
        f.flush()
        os.fsync(f.fileno())
    os.replace(temp, target)


def _scan(base: Path, prefix: tuple[str, ...]) -> list[tuple[str, ...]]:
    if not base.is_dir():
        return []
    keys = []
    for path in base.rglob("*" + DOCUMENT_SUFFIX):
        if not path.is_file():
            continue
        relative = path.relative_to(base).parts
        *parents, last = relative
        keys.append(prefix + tuple(parents) + (last[: -len(DOCUMENT_SUFFIX)],))
    keys.sort()
    return keys

"""
Tests for the JSON document storage engine and its locks.
"""
import asyncio
import json
from pathlib import Path

import pytest

from storage import NamedLocks, RWLock, StorageEngine
from storage.migrations import MIGRATION_FILENAME, read_counter


class TestReadWrite:
    """Test plain document reads and writes."""

    @pytest.mark.asyncio
    async def test_round_trip(self, storage: StorageEngine):
        """A written document reads back deep-equal."""
        value = {"id": "ses_1", "nested": {"list": [1, 2, {"x": None}]}, "flag": True}
        await storage.write(("session", "info", "ses_1"), value)

        assert await storage.read(("session", "info", "ses_1")) == value

    @pytest.mark.asyncio
    async def test_key_maps_to_json_file(self, storage: StorageEngine):
        """Keys map to nested .json files under the root."""
        await storage.write(("session", "message", "ses_1", "msg_1"), {"a": 1})

        path = storage.root / "session" / "message" / "ses_1" / "msg_1.json"
        assert path.is_file()
        assert json.loads(path.read_text()) == {"a": 1}
        assert not list(path.parent.glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_read_missing_raises(self, storage: StorageEngine):
        """Reading a missing document propagates FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            await storage.read(("session", "info", "missing"))

    @pytest.mark.asyncio
    async def test_read_corrupt_raises(self, storage: StorageEngine):
        """A corrupt document raises a decode error."""
        await storage.write(("doc",), {"ok": True})
        storage.path_for(("doc",)).write_text("{not json")

        with pytest.raises(json.JSONDecodeError):
            await storage.read(("doc",))

    @pytest.mark.asyncio
    async def test_write_publishes_event(self, storage: StorageEngine, event_bus):
        """Every write publishes storage.write with key and content."""
        await storage.write(("a", "b"), {"v": 1})

        events = event_bus.of_type("storage.write")
        assert len(events) == 1
        assert events[0].properties == {"key": ["a", "b"], "content": {"v": 1}}

    @pytest.mark.parametrize("key", [(), ("",), ("a", ".."), ("a/b",), (".",)])
    def test_invalid_keys(self, storage: StorageEngine, key):
        """Empty keys and path-like segments are rejected."""
        with pytest.raises(ValueError):
            storage.path_for(key)


class TestUpdate:
    """Test read-modify-write updates."""

    @pytest.mark.asyncio
    async def test_update_applies_only_callback_changes(self, storage: StorageEngine):
        """update persists the whole document with the callback's changes."""
        await storage.write(("doc",), {"title": "old", "keep": [1, 2]})

        def edit(doc):
            doc["title"] = "new"

        result = await storage.update(("doc",), edit)

        assert result == {"title": "new", "keep": [1, 2]}
        assert await storage.read(("doc",)) == {"title": "new", "keep": [1, 2]}

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, storage: StorageEngine):
        """Updating a missing document propagates FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            await storage.update(("missing",), lambda doc: None)

    @pytest.mark.asyncio
    async def test_concurrent_updates_serialize(self, storage: StorageEngine):
        """Concurrent updates never lose an increment."""
        await storage.write(("counter",), {"n": 0})

        def increment(doc):
            doc["n"] += 1

        await asyncio.gather(*(storage.update(("counter",), increment) for _ in range(25)))

        assert await storage.read(("counter",)) == {"n": 25}

    @pytest.mark.asyncio
    async def test_update_publishes_event(self, storage: StorageEngine, event_bus):
        """update publishes the updated content."""
        await storage.write(("doc",), {"n": 1})
        await storage.update(("doc",), lambda doc: doc.update(n=2))

        events = event_bus.of_type("storage.write")
        assert events[-1].properties["content"] == {"n": 2}


class TestRemoveAndList:
    """Test removal and listing."""

    @pytest.mark.asyncio
    async def test_remove(self, storage: StorageEngine):
        """Removed documents can no longer be read; removing twice is fine."""
        await storage.write(("doc",), {})
        await storage.remove(("doc",))
        await storage.remove(("doc",))

        with pytest.raises(FileNotFoundError):
            await storage.read(("doc",))

    @pytest.mark.asyncio
    async def test_list_sorted(self, storage: StorageEngine):
        """list returns sorted key tuples without the .json suffix."""
        for name in ["msg_c", "msg_a", "msg_b"]:
            await storage.write(("session", "message", "ses_1", name), {})
        await storage.write(("session", "message", "ses_2", "msg_z"), {})

        keys = await storage.list(("session", "message", "ses_1"))

        assert keys == [
            ("session", "message", "ses_1", "msg_a"),
            ("session", "message", "ses_1", "msg_b"),
            ("session", "message", "ses_1", "msg_c"),
        ]

    @pytest.mark.asyncio
    async def test_list_recursive(self, storage: StorageEngine):
        """list descends into nested directories."""
        await storage.write(("session", "message", "ses_1", "msg_1"), {})
        await storage.write(("session", "info", "ses_1"), {})

        keys = await storage.list(("session",))

        assert ("session", "info", "ses_1") in keys
        assert ("session", "message", "ses_1", "msg_1") in keys

    @pytest.mark.asyncio
    async def test_list_missing_prefix(self, storage: StorageEngine):
        """Listing a prefix that does not exist returns an empty list."""
        assert await storage.list(("nothing", "here")) == []


class TestMigrations:
    """Test the migration counter."""

    @pytest.mark.asyncio
    async def test_migrations_run_once(self, tmp_path: Path):
        """Each migration runs once per root; the counter survives restarts."""
        calls: list[int] = []

        async def first(root: Path) -> None:
            calls.append(1)

        async def second(root: Path) -> None:
            calls.append(2)

        root = tmp_path / "storage"
        engine = StorageEngine(root, migrations=[first, second])
        await asyncio.gather(engine.list(("a",)), engine.list(("b",)))

        assert calls == [1, 2]
        assert read_counter(root) == 2
        assert (root / MIGRATION_FILENAME).read_text() == "2"

        again = StorageEngine(root, migrations=[first, second])
        await again.list(("a",))
        assert calls == [1, 2]

    @pytest.mark.asyncio
    async def test_new_migration_runs_after_restart(self, tmp_path: Path):
        """Appending a migration runs only the new one."""
        calls: list[str] = []

        async def first(root: Path) -> None:
            calls.append("first")

        async def rewrite(root: Path) -> None:
            calls.append("rewrite")
            (root / "marker.json").write_text("{}")

        root = tmp_path / "storage"
        await StorageEngine(root, migrations=[first]).list(("x",))
        await StorageEngine(root, migrations=[first, rewrite]).list(("x",))

        assert calls == ["first", "rewrite"]
        assert (root / "marker.json").exists()


class TestLocks:
    """Test reader/writer locks."""

    @pytest.mark.asyncio
    async def test_readers_share(self):
        """Many readers may hold the lock together."""
        lock = RWLock()
        async with lock.read():
            async with lock.read():
                assert lock.readers == 2

    @pytest.mark.asyncio
    async def test_writer_excludes_readers(self):
        """A reader waits for an active writer."""
        lock = RWLock()
        order: list[str] = []

        async def reader():
            async with lock.read():
                order.append("read")

        async with lock.write():
            task = asyncio.create_task(reader())
            await asyncio.sleep(0.01)
            assert order == []
            order.append("write done")
        await task

        assert order == ["write done", "read"]

    @pytest.mark.asyncio
    async def test_waiting_writer_blocks_new_readers(self):
        """A queued writer goes before readers that arrive after it."""
        lock = RWLock()
        order: list[str] = []

        async def writer():
            async with lock.write():
                order.append("write")

        async def late_reader():
            async with lock.read():
                order.append("late read")

        async with lock.read():
            write_task = asyncio.create_task(writer())
            await asyncio.sleep(0.01)
            read_task = asyncio.create_task(late_reader())
            await asyncio.sleep(0.01)
        await asyncio.gather(write_task, read_task)

        assert order == ["write", "late read"]

    @pytest.mark.asyncio
    async def test_named_locks_are_released(self):
        """Idle named locks are forgotten."""
        locks = NamedLocks()
        async with locks.write("a"):
            async with locks.read("b"):
                assert len(locks) == 2
        assert len(locks) == 0

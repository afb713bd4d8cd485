"""
Storage migrations.

A migration is an async callable that receives the storage root and
rewrites documents in place. Migrations run in list order, each at most once
per storage root; the index of the next migration to run is persisted in
``<root>/migration``. Append new migrations, never reorder or remove them.
"""

import logging
from pathlib import Path
from typing import Awaitable, Callable

from config.logging_config import log_timing

logger = logging.getLogger(__name__)

Migration = Callable[[Path], Awaitable[None]]

MIGRATION_FILENAME = "migration"

MIGRATIONS: list[Migration] = []


def read_counter(root: Path) -> int:
    """Return the persisted migration counter, 0 when absent or unreadable."""
    path = root / MIGRATION_FILENAME
    try:
        return int(path.read_text().strip())
    except (OSError, ValueError):
        return 0


def write_counter(root: Path, value: int) -> None:
    (root / MIGRATION_FILENAME).write_text(str(value))


async def run_migrations(root: Path, migrations: list[Migration]) -> int:
    """
    Run every migration the storage root has not seen yet.

    Args:
        root: Storage root directory
        migrations: Ordered migration list

    Returns:
        The counter value after running
    """
    root.mkdir(parents=True, exist_ok=True)
    current = read_counter(root)
    for index in range(current, len(migrations)):
        logger.info("Running storage migration %d", index)
        with log_timing(logger, "Storage migration %d", index, level=logging.INFO):
            await migrations[index](root)
        write_counter(root, index + 1)
        current = index + 1
    return current

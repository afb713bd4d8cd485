"""
Persistent JSON document storage.

Provides the keyed document store used for sessions and messages, its
reader/writer locks, and the migration runner.
"""

from .engine import StorageEngine
from .locks import NamedLocks, RWLock
from .migrations import MIGRATIONS, Migration, run_migrations

__all__ = [
    "StorageEngine",
    "NamedLocks",
    "RWLock",
    "MIGRATIONS",
    "Migration",
    "run_migrations",
]

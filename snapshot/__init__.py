"""Working tree snapshots backed by per-session git directories."""

from .snapshot import Patch, SnapshotManager, SnapshotNotFoundError, parse_status

__all__ = ["Patch", "SnapshotManager", "SnapshotNotFoundError", "parse_status"]

"""
Snapshot system for capturing and restoring working tree state.

Each session gets its own git directory under ``<data>/snapshot/<sessionID>``
that shares the project's working tree. A snapshot is a commit in that
directory, so unchanged file contents are stored once no matter how many
snapshots reference them.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
from pathlib import Path

import git
from git import Repo
from pydantic import BaseModel, Field

from config.logging_config import log_timing

logger = logging.getLogger(__name__)

SNAPSHOT_DIRNAME = "snapshot"
COMMIT_MESSAGE = "snapshot"
# Paths per git invocation when staging
PATH_CHUNK = 500
# Snapshot hashes are (possibly abbreviated) hex commit ids, never options or refs
HASH_PATTERN = re.compile(r"^[0-9a-fA-F]{4,64}$")


class SnapshotNotFoundError(LookupError):
    """Raised when a hash does not name a commit in the session's snapshots."""

    def __init__(self, hash: str):
        self.hash = hash
        super().__init__(f"Snapshot not found: {hash}")


class Patch(BaseModel):
    """Files that differ between a snapshot and the working tree."""

    hash: str
    files: list[str] = Field(default_factory=list, description="Absolute file paths")


def _chunks(items: list[str], size: int = PATH_CHUNK):
    for start in range(0, len(items), size):
        yield items[start : start + size]


def parse_status(output: str) -> list[str]:
    """
    Extract paths from ``git status --porcelain -z`` output.

    Args:
        output: NUL separated status entries (``XY <path>``)

    Returns:
        Paths relative to the worktree root
    """
    return [entry[3:] for entry in output.split("\0") if len(entry) > 3]


class SnapshotManager:
    """
    Manages working tree snapshots using one isolated git directory per session.

    Git commands run in worker threads; calls for the same session are
    serialized because they share an index.

    Args:
        worktree: The project working tree to track
        data_dir: Directory under which ``snapshot/<sessionID>`` git dirs live
        enabled: When False, ``track`` records nothing and returns None
    """

    def __init__(self, worktree: Path | str, data_dir: Path | str, enabled: bool = True):
        self.worktree = Path(worktree).resolve()
        self.data_dir = Path(data_dir).resolve()
        self.enabled = enabled
        self._locks: dict[str, asyncio.Lock] = {}

    def gitdir(self, session_id: str) -> Path:
        return self.data_dir / SNAPSHOT_DIRNAME / session_id

    def _lock(self, session_id: str) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    # =========================================================================
    # Git plumbing
    # =========================================================================

    def _ensure_init(self, session_id: str) -> Path:
        """Create the session's git directory on first use."""
        gitdir = self.gitdir(session_id)
        if (gitdir / "HEAD").exists():
            return gitdir

        gitdir.mkdir(parents=True, exist_ok=True)
        repo = Repo.init(gitdir, bare=True)
        with repo.config_writer() as writer:
            writer.set_value("user", "name", "agent")
            writer.set_value("user", "email", "agent@localhost")
            writer.set_value("commit", "gpgsign", "false")
            writer.set_value("core", "autocrlf", "false")
        repo.close()

        # Keep the data directory out of snapshots when it lives in the worktree
        exclude_lines = ["# Exclude snapshot storage from being tracked"]
        if self.data_dir.is_relative_to(self.worktree) and self.data_dir != self.worktree:
            exclude_lines.append("/" + self.data_dir.relative_to(self.worktree).as_posix() + "/")
        info_dir = gitdir / "info"
        info_dir.mkdir(exist_ok=True)
        (info_dir / "exclude").write_text("\n".join(exclude_lines) + "\n")

        logger.info("Initialized snapshot repository for session %s", session_id)
        return gitdir

    def _run(self, gitdir: Path, *args: str) -> str:
        cmd = git.Git(str(self.worktree))
        with cmd.custom_environment(GIT_DIR=str(gitdir), GIT_WORK_TREE=str(self.worktree)):
            return cmd.execute(["git", *args])

    def _stage(self, gitdir: Path) -> None:
        """Stage every change, removing index entries of deleted files explicitly."""
        status = self._run(
            gitdir, "status", "--porcelain", "-z", "--untracked-files=all", "--no-renames"
        )
        present, missing = [], []
        for path in parse_status(status):
            target = self.worktree / path
            if target.exists() or target.is_symlink():
                present.append(path)
            else:
                missing.append(path)
        for chunk in _chunks(present):
            self._run(gitdir, "add", "--", *chunk)
        for chunk in _chunks(missing):
            self._run(gitdir, "rm", "--cached", "--quiet", "--ignore-unmatch", "--", *chunk)
        logger.debug("Staged %d changed and %d deleted paths", len(present), len(missing))

    def _resolve(self, gitdir: Path, hash: str) -> str | None:
        """Return the full commit id for ``hash``, or None if it names no snapshot."""
        if not HASH_PATTERN.match(hash):
            logger.warning("Rejected malformed snapshot hash %r", hash)
            return None
        try:
            return self._run(gitdir, "rev-parse", "--verify", "--quiet", f"{hash}^{{commit}}").strip()
        except git.GitCommandError:
            return None

    def _relative(self, file: str) -> str:
        path = Path(file)
        if path.is_absolute():
            return path.relative_to(self.worktree).as_posix()
        return path.as_posix()

    # =========================================================================
    # Synchronous operations
    # =========================================================================

    def _track(self, session_id: str) -> str:
        gitdir = self._ensure_init(session_id)
        self._stage(gitdir)
        self._run(gitdir, "commit", "--allow-empty", "--no-verify", "--quiet", "-m", COMMIT_MESSAGE)
        return self._run(gitdir, "rev-parse", "HEAD").strip()

    def _patch(self, session_id: str, hash: str) -> Patch:
        gitdir = self._ensure_init(session_id)
        commit = self._resolve(gitdir, hash)
        if commit is None:
            logger.warning("Cannot diff against unknown snapshot %r", hash)
            return Patch(hash=hash, files=[])
        self._stage(gitdir)
        output = self._run(gitdir, "diff", "--name-only", "--no-renames", commit, "--", ".")
        files = [str(self.worktree / line.strip()) for line in output.splitlines() if line.strip()]
        return Patch(hash=hash, files=files)

    def _restore(self, session_id: str, hash: str) -> None:
        gitdir = self._ensure_init(session_id)
        commit = self._resolve(gitdir, hash)
        if commit is None:
            raise SnapshotNotFoundError(hash)
        self._run(gitdir, "read-tree", commit)
        self._run(gitdir, "checkout-index", "-a", "-f")

    def _revert(self, session_id: str, patches: list[Patch]) -> None:
        gitdir = self._ensure_init(session_id)
        seen: set[str] = set()
        for patch in patches:
            commit = self._resolve(gitdir, patch.hash)
            if commit is None:
                # The patch still claims its files so later patches leave them alone
                logger.warning("Snapshot %r not found, skipping %d files", patch.hash, len(patch.files))
                seen.update(patch.files)
                continue
            for file in patch.files:
                if file in seen:
                    continue
                seen.add(file)
                try:
                    relative = self._relative(file)
                except ValueError:
                    logger.warning("Skipping %s outside of %s", file, self.worktree)
                    continue
                if self._run(gitdir, "ls-tree", commit, "--", relative):
                    logger.info("Reverting %s to %s", file, commit)
                    self._run(gitdir, "checkout", commit, "--", relative)
                else:
                    logger.info("File %s not in snapshot %s, deleting", file, commit)
                    (self.worktree / relative).unlink(missing_ok=True)

    def _diff(self, session_id: str, hash: str) -> str:
        gitdir = self._ensure_init(session_id)
        commit = self._resolve(gitdir, hash)
        if commit is None:
            raise SnapshotNotFoundError(hash)
        self._stage(gitdir)
        return self._run(gitdir, "diff", "--no-renames", commit, "--", ".").strip()

    # =========================================================================
    # Public API
    # =========================================================================

    async def track(self, session_id: str) -> str | None:
        """
        Capture the current working tree state.

        Returns:
            The snapshot commit hash, or None when snapshots are disabled
        """
        if not self.enabled:
            return None
        async with self._lock(session_id):
            with log_timing(logger, "Snapshot track %s", session_id):
                return await asyncio.to_thread(self._track, session_id)

    create = track

    async def patch(self, session_id: str, hash: str) -> Patch:
        """
        List the files that differ between ``hash`` and the working tree.

        An unknown hash yields an empty file list.
        """
        async with self._lock(session_id):
            with log_timing(logger, "Snapshot patch %s", hash[:12]):
                return await asyncio.to_thread(self._patch, session_id, hash)

    async def restore(self, session_id: str, hash: str) -> None:
        """Force the whole working tree back to ``hash``.

        Raises:
            SnapshotNotFoundError: If ``hash`` names no snapshot commit
        """
        logger.info("Restoring session %s to snapshot %s", session_id, hash)
        async with self._lock(session_id):
            with log_timing(logger, "Snapshot restore %s", hash[:12], level=logging.INFO):
                await asyncio.to_thread(self._restore, session_id, hash)

    async def revert(self, session_id: str, patches: list[Patch]) -> None:
        """
        Undo the files listed in ``patches``.

        Each file is handled once, by the first patch listing it: restored to
        that snapshot's content, or deleted when the snapshot did not have it.
        """
        if not patches:
            return
        async with self._lock(session_id):
            with log_timing(logger, "Snapshot revert %s", session_id, level=logging.INFO):
                await asyncio.to_thread(self._revert, session_id, patches)

    async def diff(self, session_id: str, hash: str) -> str:
        """Unified diff of the working tree against ``hash``.

        Raises:
            SnapshotNotFoundError: If ``hash`` names no snapshot commit
        """
        async with self._lock(session_id):
            return await asyncio.to_thread(self._diff, session_id, hash)

    async def remove(self, session_id: str) -> None:
        """Delete a session's snapshot history."""
        gitdir = self.gitdir(session_id)
        async with self._lock(session_id):
            if gitdir.exists():
                await asyncio.to_thread(shutil.rmtree, gitdir)
                logger.info("Removed snapshots of session %s", session_id)
        self._locks.pop(session_id, None)

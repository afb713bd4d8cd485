"""
Agent session server entry point.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

import git
import uvicorn
from fastapi import FastAPI

from config import Config, get_config, get_data_directory, get_working_directory, setup_logging
from core import (
    ChatEngine,
    MessageStore,
    SessionLock,
    SessionStore,
    ShareClient,
    Summarizer,
    SystemPrompt,
)
from provider import ProviderRegistry
from server import Runtime, app, set_runtime
from server.event_bus import get_event_bus
from snapshot import SnapshotManager
from storage import StorageEngine

# Initialize logging before anything else
setup_logging()
logger = logging.getLogger(__name__)

# Constants
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
STORAGE_DIRNAME = "storage"


def find_worktree(directory: Path) -> Path:
    """Return the root of the git worktree containing ``directory``, or ``directory`` itself."""
    try:
        repo = git.Repo(directory, search_parent_directories=True)
    except (git.InvalidGitRepositoryError, git.NoSuchPathError):
        return directory
    try:
        return Path(repo.working_tree_dir or directory)
    finally:
        repo.close()


def build_runtime(
    config: Config,
    working_dir: Path,
    providers: ProviderRegistry | None = None,
) -> Runtime:
    """
    Wire the stores, lock, chat engine and snapshot manager together.

    Args:
        config: Loaded configuration
        working_dir: Directory the agent works in
        providers: Provider registry (defaults to the configured model table)

    Returns:
        The runtime served by the HTTP routes
    """
    data_dir = get_data_directory(config)
    worktree = find_worktree(working_dir)
    event_bus = get_event_bus()

    storage = StorageEngine(data_dir / STORAGE_DIRNAME, event_bus)
    messages = MessageStore(storage, event_bus)
    share_client = ShareClient(config.share.url) if config.share.enabled else None
    sessions = SessionStore(storage, event_bus, messages, share_client)
    lock = SessionLock()
    providers = providers or ProviderRegistry.from_config(config)
    system_prompt = SystemPrompt(working_dir, worktree, config)
    chat = ChatEngine(
        sessions,
        messages,
        lock,
        providers,
        event_bus,
        system_prompt,
        summarizer=Summarizer(messages, lock, providers, system_prompt),
    )
    snapshots = SnapshotManager(worktree, data_dir, enabled=config.snapshot)
    return Runtime(
        config=config,
        storage=storage,
        sessions=sessions,
        messages=messages,
        lock=lock,
        providers=providers,
        chat=chat,
        snapshots=snapshots,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the runtime on startup and drain background work on shutdown."""
    working_dir = Path(get_working_directory()).resolve()
    config = get_config(working_dir)

    logger.info("Starting agent server")
    logger.info("Model: %s/%s", config.provider, config.model)
    logger.info("Working directory: %s", working_dir)
    logger.info("Data directory: %s", get_data_directory(config))

    runtime = build_runtime(config, working_dir)
    set_runtime(runtime)

    yield

    logger.info("Shutting down")
    await runtime.aclose()
    set_runtime(None)


app.router.lifespan_context = lifespan


def main() -> None:
    """Start the server."""
    host = os.environ.get("HOST", DEFAULT_HOST)
    port = int(os.environ.get("PORT", str(DEFAULT_PORT)))

    logger.info("Server listening on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()

"""
Server-side state management.

The server binds HTTP routes to one ``Runtime``: the stores, lock, chat
engine and snapshot manager built at startup (see ``main.py``) or by tests.
"""

from dataclasses import dataclass

from config import Config
from core import ChatEngine, MessageStore, SessionLock, SessionStore
from provider import ProviderRegistry
from snapshot import SnapshotManager
from storage import StorageEngine


@dataclass
class Runtime:
    """Everything a request handler needs."""

    config: Config
    storage: StorageEngine
    sessions: SessionStore
    messages: MessageStore
    lock: SessionLock
    providers: ProviderRegistry
    chat: ChatEngine
    snapshots: SnapshotManager

    async def aclose(self) -> None:
        await self.chat.aclose()
        await self.sessions.aclose()
        if self.sessions.share_client is not None:
            await self.sessions.share_client.aclose()


# =============================================================================
# Runtime Management
# =============================================================================


class RuntimeNotConfiguredError(RuntimeError):
    """Raised when a request arrives before the runtime is set."""


_runtime: Runtime | None = None


def set_runtime(runtime: Runtime | None) -> None:
    """Set the runtime instance. Called at startup."""
    global _runtime
    _runtime = runtime


def get_runtime() -> Runtime:
    """
    Get the current runtime instance.

    Raises:
        RuntimeNotConfiguredError: If the server was started without a runtime
    """
    if _runtime is None:
        raise RuntimeNotConfiguredError("Server runtime is not configured")
    return _runtime

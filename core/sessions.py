"""
Session operations.

Provides the session store: creating, reading, updating and listing
sessions, plus publishing a session through the share service. Session ids
are descending, so listing the storage prefix yields newest sessions first.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from .events import SESSION_UPDATED, Event, EventBus, NullEventBus
from .exceptions import InvalidOperationError, NotFoundError
from .identifier import descending
from .messages import MessageStore, message_key
from .models import Session, SessionTime, ShareInfo, now_ms
from .share import ShareClient
from .tasks import BackgroundTasks

if TYPE_CHECKING:
    from storage import StorageEngine

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

ROOT_TITLE_PREFIX = "New session - "
CHILD_TITLE_PREFIX = "Child session - "


def session_key(session_id: str) -> tuple[str, ...]:
    return ("session", "info", session_id)


class SessionStore:
    """
    Session metadata backed by the storage engine.

    Sessions read or written through the store are cached per instance. New
    root sessions are shared in the background when a share client is
    configured.
    """

    def __init__(
        self,
        storage: StorageEngine,
        event_bus: EventBus | None = None,
        messages: MessageStore | None = None,
        share_client: ShareClient | None = None,
    ):
        self.storage = storage
        self.event_bus = event_bus or NullEventBus()
        self.messages = messages or MessageStore(storage, self.event_bus)
        self.share_client = share_client
        self.background = BackgroundTasks()
        self._cache: dict[str, Session] = {}

    # =========================================================================
    # Session CRUD
    # =========================================================================

    async def create(self, parent_id: str | None = None) -> Session:
        """
        Create a new session.

        Args:
            parent_id: Optional parent session ID

        Returns:
            The created session
        """
        now = now_ms()
        stamp = datetime.now(timezone.utc).isoformat()
        session = Session(
            id=descending("session"),
            parentID=parent_id,
            title=(CHILD_TITLE_PREFIX if parent_id else ROOT_TITLE_PREFIX) + stamp,
            time=SessionTime(created=now, updated=now),
        )
        await self.storage.write(session_key(session.id), session.model_dump(mode="json"))
        self._cache[session.id] = session
        logger.info("Session created: %s", session.id)

        if parent_id is None and self.share_client is not None:
            self.background.spawn(self.share(session.id), name=f"share {session.id}")

        await self._publish(session)
        return session

    async def get(self, session_id: str) -> Session:
        """
        Get a session by ID.

        Raises:
            NotFoundError: If the session is not found
        """
        cached = self._cache.get(session_id)
        if cached is not None:
            return cached
        try:
            data = await self.storage.read(session_key(session_id))
        except FileNotFoundError:
            raise NotFoundError("Session", session_id) from None
        session = Session.model_validate(data)
        self._cache[session_id] = session
        return session

    async def update(self, session_id: str, editor: Callable[[Session], None]) -> Session:
        """
        Apply ``editor`` to a session, bump ``time.updated`` and persist it.

        Args:
            session_id: The session ID
            editor: Callback mutating the session in place

        Returns:
            The updated session

        Raises:
            NotFoundError: If the session is not found
        """
        result: dict[str, Session] = {}

        def apply(document: dict) -> None:
            session = Session.model_validate(document)
            editor(session)
            session.time.updated = now_ms()
            document.clear()
            document.update(session.model_dump(mode="json"))
            result["session"] = session

        try:
            await self.storage.update(session_key(session_id), apply)
        except FileNotFoundError:
            raise NotFoundError("Session", session_id) from None

        session = result["session"]
        self._cache[session_id] = session
        await self._publish(session)
        return session

    async def list(self) -> list[Session]:
        """
        List all sessions.

        Returns:
            Sessions ordered newest first
        """
        keys = await self.storage.list(("session", "info"))
        return [await self.get(key[-1]) for key in keys]

    async def children(self, parent_id: str) -> list[Session]:
        return [s for s in await self.list() if s.parentID == parent_id]

    # =========================================================================
    # Sharing
    # =========================================================================

    async def share(self, session_id: str) -> ShareInfo:
        """
        Share a session and push its existing messages.

        Returns:
            The session's share info (existing info is returned unchanged)

        Raises:
            NotFoundError: If the session is not found
            InvalidOperationError: If no share client is configured
        """
        session = await self.get(session_id)
        if session.share is not None:
            return session.share
        if self.share_client is None:
            raise InvalidOperationError("Sharing is not configured")

        info = await self.share_client.create(session_id)

        def attach(draft: Session) -> None:
            draft.share = info

        await self.update(session_id, attach)
        for message in await self.messages.list(session_id):
            key = "/".join(message_key(session_id, message.id))
            await self.share_client.sync(
                session_id, info.secret, key, message.model_dump(mode="json")
            )
        return info

    async def _publish(self, session: Session) -> None:
        await self.event_bus.publish(
            Event(type=SESSION_UPDATED, properties={"info": session.model_dump(mode="json")})
        )

    async def aclose(self) -> None:
        await self.background.aclose()

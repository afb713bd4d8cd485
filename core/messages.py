"""
Message persistence.

Messages of a session live at ``session/message/<sessionID>/<messageID>``.
Message ids are ascending, so the key sort returned by storage is also the
chronological order of the messages.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .events import MESSAGE_UPDATED, Event, EventBus, NullEventBus
from .exceptions import NotFoundError
from .models import Message

if TYPE_CHECKING:
    from storage import StorageEngine

logger = logging.getLogger(__name__)


def message_key(session_id: str, message_id: str) -> tuple[str, ...]:
    return ("session", "message", session_id, message_id)


class MessageStore:
    """Typed access to the message log of every session."""

    def __init__(self, storage: StorageEngine, event_bus: EventBus | None = None):
        self.storage = storage
        self.event_bus = event_bus or NullEventBus()

    async def list(self, session_id: str) -> list[Message]:
        """
        List messages of a session in creation order.

        Args:
            session_id: The session ID

        Returns:
            Messages sorted by id (empty for an unknown session)
        """
        keys = await self.storage.list(("session", "message", session_id))
        messages = [Message.model_validate(await self.storage.read(key)) for key in keys]
        messages.sort(key=lambda m: m.id)
        return messages

    async def get(self, session_id: str, message_id: str) -> Message:
        """
        Get a single message.

        Raises:
            NotFoundError: If the message does not exist
        """
        try:
            data = await self.storage.read(message_key(session_id, message_id))
        except FileNotFoundError:
            raise NotFoundError("Message", message_id) from None
        return Message.model_validate(data)

    async def update(self, message: Message) -> None:
        """Persist the whole message and publish ``message.updated``."""
        info = message.model_dump(mode="json")
        await self.storage.write(message_key(message.metadata.sessionID, message.id), info)
        await self.event_bus.publish(Event(type=MESSAGE_UPDATED, properties={"info": info}))

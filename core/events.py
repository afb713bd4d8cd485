"""
Event types and EventBus protocol.

Core publishes an ``Event`` for every durable change: session metadata,
whole messages, single message parts, storage writes and turn errors. The
server layer fans them out over SSE; tests record them.
"""

from typing import Any, Protocol

from pydantic import BaseModel


SESSION_UPDATED = "session.updated"
SESSION_ERROR = "session.error"
MESSAGE_UPDATED = "message.updated"
MESSAGE_PART_UPDATED = "message.partUpdated"
STORAGE_WRITE = "storage.write"


class Event(BaseModel):
    """Domain event that can be published to subscribers."""

    type: str
    properties: dict[str, Any]

    @property
    def session_id(self) -> str | None:
        """The session an event belongs to, when it belongs to one."""
        props = self.properties
        if "sessionID" in props:
            return props["sessionID"]
        info = props.get("info")
        if not isinstance(info, dict):
            return None
        if self.type == SESSION_UPDATED:
            return info.get("id")
        return (info.get("metadata") or {}).get("sessionID")


class EventBus(Protocol):
    """Abstract interface for publishing events."""

    async def publish(self, event: Event) -> None:
        """Publish an event to all subscribers."""
        ...


class NullEventBus:
    """EventBus that drops everything, used when no bus is wired in."""

    async def publish(self, event: Event) -> None:
        pass

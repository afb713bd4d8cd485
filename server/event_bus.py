"""
SSE-based EventBus implementation.

Every subscriber owns a queue. A subscriber may narrow its stream to one
session; storage writes and other session-less events only reach unfiltered
subscribers.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from core import Event

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Subscription:
    session_id: str | None = None
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)

    def wants(self, event: Event) -> bool:
        return self.session_id is None or event.session_id == self.session_id


class SSEEventBus:
    """EventBus implementation that broadcasts events to SSE subscribers."""

    def __init__(self) -> None:
        self.subscriptions: list[Subscription] = []

    async def publish(self, event: Event) -> None:
        """Queue the JSON form of ``event`` for every interested subscriber."""
        targets = [s for s in self.subscriptions if s.wants(event)]
        if not targets:
            return
        data = event.model_dump(mode="json")
        logger.debug("Publishing %s to %d subscribers", event.type, len(targets))
        for subscription in targets:
            subscription.queue.put_nowait(data)

    def subscribe(self, session_id: str | None = None) -> Subscription:
        """
        Start receiving events.

        Args:
            session_id: Only deliver events of this session when given

        Returns:
            The subscription whose queue receives event dicts
        """
        subscription = Subscription(session_id=session_id)
        self.subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self.subscriptions:
            self.subscriptions.remove(subscription)


_event_bus: SSEEventBus | None = None


def get_event_bus() -> SSEEventBus:
    """Get the process-wide event bus, creating it if necessary."""
    global _event_bus
    if _event_bus is None:
        _event_bus = SSEEventBus()
    return _event_bus

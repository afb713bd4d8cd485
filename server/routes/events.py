"""
Event SSE endpoint.
"""

import json
from typing import AsyncGenerator

from fastapi import APIRouter
from sse_starlette.sse import EventSourceResponse

from ..event_bus import get_event_bus


router = APIRouter()


@router.get("/event")
async def event_stream(sessionID: str | None = None) -> EventSourceResponse:
    """Subscribe to bus events via SSE, optionally for a single session."""
    event_bus = get_event_bus()
    subscription = event_bus.subscribe(sessionID)

    async def event_generator() -> AsyncGenerator[dict, None]:
        try:
            while True:
                event = await subscription.queue.get()
                yield {"event": event["type"], "data": json.dumps(event)}
        finally:
            event_bus.unsubscribe(subscription)

    return EventSourceResponse(event_generator())

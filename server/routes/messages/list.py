"""
List messages endpoint.
"""

from fastapi import APIRouter, HTTPException

from core import Message, NotFoundError

from ...state import get_runtime


router = APIRouter()


@router.get("/session/{sessionID}/message")
async def list_messages_route(sessionID: str) -> list[Message]:
    """List messages in a session in creation order."""
    runtime = get_runtime()
    try:
        await runtime.sessions.get(sessionID)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    return await runtime.messages.list(sessionID)

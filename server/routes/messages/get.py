"""
Get message endpoint.
"""

from fastapi import APIRouter, HTTPException

from core import Message, NotFoundError

from ...state import get_runtime


router = APIRouter()


@router.get("/session/{sessionID}/message/{messageID}")
async def get_message_route(sessionID: str, messageID: str) -> Message:
    """Get a specific message."""
    try:
        return await get_runtime().messages.get(sessionID, messageID)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")

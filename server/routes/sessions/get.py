"""
Get session endpoint.
"""

from fastapi import APIRouter, HTTPException

from core import NotFoundError, Session

from ...state import get_runtime


router = APIRouter()


@router.get("/session/{sessionID}")
async def get_session_route(sessionID: str) -> Session:
    """Get session details."""
    try:
        return await get_runtime().sessions.get(sessionID)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")

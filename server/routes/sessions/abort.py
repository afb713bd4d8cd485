"""
Abort session endpoint.
"""

from fastapi import APIRouter

from ...state import get_runtime


router = APIRouter()


@router.post("/session/{sessionID}/abort")
async def abort_session_route(sessionID: str) -> bool:
    """Abort the in-flight generation of a session."""
    return get_runtime().chat.abort(sessionID)

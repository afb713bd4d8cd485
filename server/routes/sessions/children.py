"""
List child sessions endpoint.
"""

from fastapi import APIRouter

from core import Session

from ...state import get_runtime


router = APIRouter()


@router.get("/session/{sessionID}/children")
async def list_children_route(sessionID: str) -> list[Session]:
    """List the sub-sessions of a session."""
    return await get_runtime().sessions.children(sessionID)

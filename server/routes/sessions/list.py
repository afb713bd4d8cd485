"""
List sessions endpoint.
"""

from fastapi import APIRouter

from core import Session

from ...state import get_runtime


router = APIRouter()


@router.get("/session")
async def list_sessions_route() -> list[Session]:
    """List all sessions, newest first."""
    return await get_runtime().sessions.list()

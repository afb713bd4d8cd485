"""
Create session endpoint.
"""

from fastapi import APIRouter, HTTPException

from core import NotFoundError, Session

from ...requests import CreateSessionRequest
from ...state import get_runtime


router = APIRouter()


@router.post("/session")
async def create_session_route(request: CreateSessionRequest | None = None) -> Session:
    """Create a new session, optionally as the child of another."""
    sessions = get_runtime().sessions
    parent_id = request.parentID if request else None
    if parent_id is not None:
        try:
            await sessions.get(parent_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Parent session not found")
    return await sessions.create(parent_id)

"""
Revert files endpoint.
"""

from fastapi import APIRouter, HTTPException

from core import NotFoundError

from ...requests import RevertRequest
from ...state import get_runtime


router = APIRouter()


@router.post("/session/{sessionID}/revert")
async def revert_route(sessionID: str, request: RevertRequest) -> bool:
    """Undo the files listed in the given patches."""
    runtime = get_runtime()
    try:
        await runtime.sessions.get(sessionID)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    await runtime.snapshots.revert(sessionID, request.patches)
    return True

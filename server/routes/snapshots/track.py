"""
Track snapshot endpoint.
"""

from fastapi import APIRouter, HTTPException

from core import NotFoundError

from ...state import get_runtime


router = APIRouter()


@router.post("/session/{sessionID}/snapshot")
async def track_snapshot_route(sessionID: str) -> str | None:
    """Snapshot the working tree; returns the hash, or null when disabled."""
    runtime = get_runtime()
    try:
        await runtime.sessions.get(sessionID)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    return await runtime.snapshots.track(sessionID)

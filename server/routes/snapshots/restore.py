"""
Restore snapshot endpoint.
"""

from fastapi import APIRouter, HTTPException

from core import NotFoundError
from snapshot import SnapshotNotFoundError

from ...requests import RestoreRequest
from ...state import get_runtime


router = APIRouter()


@router.post("/session/{sessionID}/restore")
async def restore_route(sessionID: str, request: RestoreRequest) -> bool:
    """Force the whole working tree back to a snapshot."""
    runtime = get_runtime()
    try:
        await runtime.sessions.get(sessionID)
        await runtime.snapshots.restore(sessionID, request.hash)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except SnapshotNotFoundError:
        raise HTTPException(status_code=404, detail=f"Snapshot not found: {request.hash}")
    return True

"""
Snapshot patch and diff endpoints.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from core import NotFoundError
from snapshot import Patch, SnapshotNotFoundError

from ...state import get_runtime


router = APIRouter()


@router.get("/session/{sessionID}/snapshot/{hash}")
async def snapshot_patch_route(sessionID: str, hash: str) -> Patch:
    """List the files that changed since the snapshot."""
    runtime = get_runtime()
    try:
        await runtime.sessions.get(sessionID)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    return await runtime.snapshots.patch(sessionID, hash)


@router.get("/session/{sessionID}/snapshot/{hash}/diff", response_class=PlainTextResponse)
async def snapshot_diff_route(sessionID: str, hash: str) -> str:
    """Unified diff of the working tree against the snapshot."""
    runtime = get_runtime()
    try:
        await runtime.sessions.get(sessionID)
        return await runtime.snapshots.diff(sessionID, hash)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except SnapshotNotFoundError:
        raise HTTPException(status_code=404, detail=f"Snapshot not found: {hash}")

"""
Share session endpoint.
"""

import logging

import httpx
from fastapi import APIRouter, HTTPException

from core import InvalidOperationError, NotFoundError, ShareInfo

from ...state import get_runtime

logger = logging.getLogger(__name__)


router = APIRouter()


@router.post("/session/{sessionID}/share")
async def share_session_route(sessionID: str) -> ShareInfo:
    """Publish a session through the share service."""
    try:
        return await get_runtime().sessions.share(sessionID)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except InvalidOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except httpx.HTTPError as e:
        logger.error("Sharing session %s failed: %s", sessionID, e)
        raise HTTPException(status_code=502, detail=f"Share service error: {e}")

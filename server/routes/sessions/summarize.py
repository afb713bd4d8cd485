"""
Summarize session endpoint.
"""

import logging

from fastapi import APIRouter, HTTPException

from core import BusyError, CoreError, Message, NotFoundError
from provider import ModelNotFoundError

from ...requests import ModelRequest
from ...state import get_runtime


logger = logging.getLogger(__name__)


router = APIRouter()


@router.post("/session/{sessionID}/summarize")
async def summarize_session_route(sessionID: str, request: ModelRequest) -> Message:
    """
    Summarize a session's history into a compaction boundary message.

    Later turns only send messages from the summary onward.
    """
    try:
        return await get_runtime().chat.summarize(sessionID, request.providerID, request.modelID)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except ModelNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CoreError as e:
        logger.error("Summarization failed for session %s: %s", sessionID, str(e))
        raise HTTPException(status_code=500, detail=str(e))

"""
Chat endpoint.
"""

import logging

from fastapi import APIRouter, HTTPException

from core import BusyError, ChatRequest, Message, NotFoundError
from provider import ModelNotFoundError

from ...requests import ChatInput
from ...state import get_runtime

logger = logging.getLogger(__name__)


router = APIRouter()


@router.post("/session/{sessionID}/message")
async def send_message_route(sessionID: str, request: ChatInput) -> Message:
    """
    Run a chat turn and return the finished assistant message.

    Progress is published on the event stream while the turn runs; model
    failures are reported in the returned message's ``metadata.error``.
    """
    logger.info("Processing message for session %s with model=%s", sessionID, request.modelID)
    try:
        return await get_runtime().chat.chat(
            ChatRequest(
                sessionID=sessionID,
                providerID=request.providerID,
                modelID=request.modelID,
                parts=[part.to_part() for part in request.parts],
                system=request.system,
            )
        )
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except ModelNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

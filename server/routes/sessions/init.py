"""
Initialize project endpoint.
"""

from fastapi import APIRouter, HTTPException

from core import BusyError, Message, NotFoundError
from provider import ModelNotFoundError

from ...requests import ModelRequest
from ...state import get_runtime


router = APIRouter()


@router.post("/session/{sessionID}/init")
async def init_session_route(sessionID: str, request: ModelRequest) -> Message:
    """Ask the model to analyze the project and write its AGENTS.md."""
    try:
        return await get_runtime().chat.initialize(sessionID, request.providerID, request.modelID)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except ModelNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

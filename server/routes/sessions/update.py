"""
Update session endpoint.
"""

from fastapi import APIRouter, HTTPException

from core import NotFoundError, Session

from ...requests import UpdateSessionRequest
from ...state import get_runtime


router = APIRouter()


@router.patch("/session/{sessionID}")
async def update_session_route(sessionID: str, request: UpdateSessionRequest) -> Session:
    """Update the session title."""

    def edit(session: Session) -> None:
        if request.title is not None:
            session.title = request.title

    try:
        return await get_runtime().sessions.update(sessionID, edit)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")

"""Session model."""

from pydantic import BaseModel, Field

from .session_time import SessionTime
from .share_info import ShareInfo


class Session(BaseModel):
    id: str = Field(description="Descending identifier, newer sessions sort first")
    title: str
    time: SessionTime
    parentID: str | None = None
    share: ShareInfo | None = None

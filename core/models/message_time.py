"""MessageTime model."""

from pydantic import BaseModel


class MessageTime(BaseModel):
    created: int
    completed: int | None = None

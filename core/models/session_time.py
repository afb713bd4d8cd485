"""SessionTime model."""

from pydantic import BaseModel


class SessionTime(BaseModel):
    created: int
    updated: int

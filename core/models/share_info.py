"""ShareInfo model."""

from pydantic import BaseModel


class ShareInfo(BaseModel):
    secret: str
    url: str

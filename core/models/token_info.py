"""TokenInfo model."""

from pydantic import BaseModel


class TokenInfo(BaseModel):
    input: int = 0
    output: int = 0
    reasoning: int = 0

"""ChatInput model."""

from pydantic import BaseModel

from .part_input import TextPartInput


class ChatInput(BaseModel):
    providerID: str
    modelID: str
    parts: list[TextPartInput]
    system: list[str] | None = None

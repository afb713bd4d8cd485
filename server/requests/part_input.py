"""PartInput models."""

from typing import Literal

from pydantic import BaseModel

from core import TextPart


class TextPartInput(BaseModel):
    type: Literal["text"] = "text"
    text: str

    def to_part(self) -> TextPart:
        return TextPart(text=self.text)


PartInput = TextPartInput

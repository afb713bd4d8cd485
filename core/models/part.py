"""Part models."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from .tool_invocation import ToolInvocation


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolInvocationPart(BaseModel):
    type: Literal["tool-invocation"] = "tool-invocation"
    toolInvocation: ToolInvocation


class StepStartPart(BaseModel):
    type: Literal["step-start"] = "step-start"


Part = Annotated[
    Union[TextPart, ToolInvocationPart, StepStartPart],
    Field(discriminator="type"),
]

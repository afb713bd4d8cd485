"""ToolInvocation models.

A tool invocation moves through ``partial-call`` (the model started streaming
the call), ``call`` (arguments are complete) and ``result``.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class ToolInvocationPartialCall(BaseModel):
    state: Literal["partial-call"] = "partial-call"
    toolCallId: str
    toolName: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolInvocationCall(BaseModel):
    state: Literal["call"] = "call"
    toolCallId: str
    toolName: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolInvocationResult(BaseModel):
    state: Literal["result"] = "result"
    toolCallId: str
    toolName: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: str


ToolInvocation = Annotated[
    Union[ToolInvocationPartialCall, ToolInvocationCall, ToolInvocationResult],
    Field(discriminator="state"),
]

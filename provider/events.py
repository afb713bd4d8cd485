"""
Events produced by a streaming model call.

A language model yields these in arrival order. Later events refer back to
earlier ones by ``tool_call_id``, so consumers must apply them in order.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from .base import Usage


@dataclass
class StepStart:
    """A new model request (step) begins."""


@dataclass
class TextDelta:
    text: str


@dataclass
class ToolCallStreamingStart:
    tool_call_id: str
    tool_name: str


@dataclass
class ToolCallDelta:
    tool_call_id: str
    tool_name: str
    args_text_delta: str


@dataclass
class ToolCall:
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolCallResult:
    tool_call_id: str
    tool_name: str
    result: str
    args: dict[str, Any] | None = None


@dataclass
class StepFinish:
    usage: Usage
    finish_reason: str | None = None


@dataclass
class Finish:
    """The whole stream completed; ``usage`` totals every step."""

    usage: Usage
    finish_reason: str | None = None


@dataclass
class StreamError:
    error: BaseException


StreamEvent = Union[
    StepStart,
    TextDelta,
    ToolCallStreamingStart,
    ToolCallDelta,
    ToolCall,
    ToolCallResult,
    StepFinish,
    Finish,
    StreamError,
]

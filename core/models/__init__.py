"""
Domain models for the session core.

These are the core data structures used throughout the application. They
are persisted as JSON documents through the storage engine.
"""

from .message import AssistantMetadata, Message, MessageMetadata
from .message_time import MessageTime
from .part import Part, StepStartPart, TextPart, ToolInvocationPart
from .path_info import PathInfo
from .session import Session
from .session_time import SessionTime
from .share_info import ShareInfo
from .token_info import TokenInfo
from .tool_invocation import (
    ToolInvocation,
    ToolInvocationCall,
    ToolInvocationPartialCall,
    ToolInvocationResult,
)
from .utils import now_ms

__all__ = [
    # Utils
    "now_ms",
    # Time models
    "SessionTime",
    "MessageTime",
    # Session models
    "ShareInfo",
    "Session",
    # Message models
    "TokenInfo",
    "PathInfo",
    "AssistantMetadata",
    "MessageMetadata",
    "Message",
    # Part models
    "TextPart",
    "StepStartPart",
    "ToolInvocationPart",
    "ToolInvocationPartialCall",
    "ToolInvocationCall",
    "ToolInvocationResult",
    "ToolInvocation",
    "Part",
]

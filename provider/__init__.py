"""
Provider, tool and stream contracts consumed by the session core.

The pydantic-ai backed implementation lives in ``provider.pydantic_ai_model``.
"""

from .base import (
    GenerateRequest,
    GenerateResult,
    LanguageModel,
    MissingAPIKeyError,
    ModelNotFoundError,
    ModelCost,
    ModelHandle,
    ModelInfo,
    ModelLimit,
    StreamRequest,
    Usage,
)
from .events import (
    Finish,
    StepFinish,
    StepStart,
    StreamError,
    StreamEvent,
    TextDelta,
    ToolCall,
    ToolCallDelta,
    ToolCallStreamingStart,
    ToolCallResult,
)
from .registry import ProviderRegistry
from .tools import (
    FunctionTool,
    McpResult,
    McpTool,
    McpToolSource,
    Tool,
    ToolAdapter,
    ToolContext,
    ToolResult,
)

__all__ = [
    # Models
    "LanguageModel",
    "ModelHandle",
    "ModelInfo",
    "ModelLimit",
    "ModelCost",
    "Usage",
    "StreamRequest",
    "GenerateRequest",
    "GenerateResult",
    "MissingAPIKeyError",
    "ModelNotFoundError",
    "ProviderRegistry",
    # Stream events
    "StreamEvent",
    "StepStart",
    "TextDelta",
    "ToolCallStreamingStart",
    "ToolCallDelta",
    "ToolCall",
    "ToolCallResult",
    "StepFinish",
    "Finish",
    "StreamError",
    # Tools
    "Tool",
    "FunctionTool",
    "ToolContext",
    "ToolResult",
    "McpTool",
    "McpResult",
    "McpToolSource",
    "ToolAdapter",
]

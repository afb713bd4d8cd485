"""
Core business logic package.

This package contains the transport-agnostic session core: sessions and
their message logs, the per-session generation lock, the chat turn loop and
context compaction. The server package provides HTTP bindings around these
core operations.
"""

from .chat import ChatEngine, ChatRequest
from .compaction import Summarizer, latest_summary, needs_compaction, window_since_summary
from .errors import classify_error, is_auth_error
from .events import Event, EventBus, NullEventBus
from .exceptions import (
    BusyError,
    CoreError,
    InvalidOperationError,
    NamedError,
    NotFoundError,
    ProviderAuthError,
    UnknownError,
)
from .lock import AbortHandle, SessionLock
from .messages import MessageStore
from .models import (
    AssistantMetadata,
    Message,
    MessageMetadata,
    MessageTime,
    Part,
    PathInfo,
    Session,
    SessionTime,
    ShareInfo,
    StepStartPart,
    TextPart,
    TokenInfo,
    ToolInvocation,
    ToolInvocationCall,
    ToolInvocationPart,
    ToolInvocationPartialCall,
    ToolInvocationResult,
    now_ms,
)
from .sessions import SessionStore
from .share import ShareClient
from .system_prompt import SystemPrompt
from .tasks import BackgroundTasks

__all__ = [
    # Exceptions
    "CoreError",
    "NotFoundError",
    "InvalidOperationError",
    "BusyError",
    "NamedError",
    "ProviderAuthError",
    "UnknownError",
    "classify_error",
    "is_auth_error",
    # Events
    "Event",
    "EventBus",
    "NullEventBus",
    # Models
    "Session",
    "SessionTime",
    "ShareInfo",
    "Message",
    "MessageMetadata",
    "AssistantMetadata",
    "MessageTime",
    "Part",
    "TextPart",
    "StepStartPart",
    "ToolInvocationPart",
    "ToolInvocation",
    "ToolInvocationPartialCall",
    "ToolInvocationCall",
    "ToolInvocationResult",
    "TokenInfo",
    "PathInfo",
    "now_ms",
    # Stores
    "SessionStore",
    "MessageStore",
    "ShareClient",
    # Turn loop
    "SessionLock",
    "AbortHandle",
    "ChatEngine",
    "ChatRequest",
    "Summarizer",
    "SystemPrompt",
    "BackgroundTasks",
    "latest_summary",
    "window_since_summary",
    "needs_compaction",
]

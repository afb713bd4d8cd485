"""
HTTP request models for the API.

These are Pydantic models for validating and parsing API requests.
"""

from .chat_request import ChatInput
from .create_session_request import CreateSessionRequest
from .model_request import ModelRequest
from .part_input import PartInput, TextPartInput
from .snapshot_request import RestoreRequest, RevertRequest
from .update_session_request import UpdateSessionRequest

__all__ = [
    # Session requests
    "CreateSessionRequest",
    "UpdateSessionRequest",
    "ModelRequest",
    # Message requests
    "TextPartInput",
    "PartInput",
    "ChatInput",
    # Snapshot requests
    "RevertRequest",
    "RestoreRequest",
]

"""Message models."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from .message_time import MessageTime
from .part import Part
from .path_info import PathInfo
from .token_info import TokenInfo


class AssistantMetadata(BaseModel):
    system: list[str] = Field(default_factory=list)
    modelID: str
    providerID: str
    path: PathInfo
    cost: float = 0.0
    tokens: TokenInfo = Field(default_factory=TokenInfo)
    summary: bool | None = Field(
        default=None,
        description="True when this message is a compaction boundary",
    )


class MessageMetadata(BaseModel):
    sessionID: str
    time: MessageTime
    tool: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per tool call metadata keyed by toolCallId",
    )
    assistant: AssistantMetadata | None = None
    error: dict[str, Any] | None = None


class Message(BaseModel):
    id: str = Field(description="Ascending identifier, sorting by id gives creation order")
    role: Literal["user", "assistant"]
    parts: list[Part] = Field(default_factory=list)
    metadata: MessageMetadata

    @property
    def is_summary(self) -> bool:
        return bool(self.metadata.assistant and self.metadata.assistant.summary)

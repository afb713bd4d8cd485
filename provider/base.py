"""
Provider contract.

The session core never talks to a model API directly. It asks a provider
registry for a ``ModelHandle`` and drives the handle's ``LanguageModel``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AsyncIterator, Protocol

if TYPE_CHECKING:
    from core.lock import AbortHandle
    from core.models import Message

    from .events import StreamEvent
    from .tools import ToolAdapter


class ModelNotFoundError(LookupError):
    """Raised when a provider does not know the requested model."""

    def __init__(self, provider_id: str, model_id: str):
        self.provider_id = provider_id
        self.model_id = model_id
        super().__init__(f"Model not found: {provider_id}/{model_id}")


class MissingAPIKeyError(Exception):
    """Raised by a language model when no credentials are configured."""

    def __init__(self, provider_id: str, env_key: str | None = None):
        self.provider_id = provider_id
        self.env_key = env_key
        hint = f" (set {env_key})" if env_key else ""
        super().__init__(f"No API key found for provider {provider_id}{hint}")


@dataclass
class ModelLimit:
    context: int
    output: int = 0


@dataclass
class ModelCost:
    """Price in USD per million tokens."""

    input: float = 0.0
    output: float = 0.0


@dataclass
class ModelInfo:
    id: str
    limit: ModelLimit
    cost: ModelCost = field(default_factory=ModelCost)
    name: str | None = None


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0
    reasoning_tokens: int = 0


@dataclass
class StreamRequest:
    system: list[str]
    messages: list[Message]
    tools: dict[str, ToolAdapter] = field(default_factory=dict)
    abort: AbortHandle | None = None
    temperature: float | None = 0


@dataclass
class GenerateRequest:
    system: list[str]
    messages: list[Message]
    max_output_tokens: int | None = None
    temperature: float | None = None
    abort: AbortHandle | None = None


@dataclass
class GenerateResult:
    text: str
    usage: Usage = field(default_factory=Usage)


class LanguageModel(Protocol):
    """A model that can stream a turn or produce a single completion."""

    def stream(self, request: StreamRequest) -> AsyncIterator[StreamEvent]:
        """Stream a turn, executing ``request.tools`` as the model calls them."""
        ...

    async def generate(self, request: GenerateRequest) -> GenerateResult:
        """Produce one non-streaming completion."""
        ...


@dataclass
class ModelHandle:
    language: LanguageModel
    info: ModelInfo

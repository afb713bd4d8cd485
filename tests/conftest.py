"""
Shared pytest fixtures for all tests.
"""
import asyncio
import inspect
from pathlib import Path
from typing import Any, AsyncIterator, Callable

import pytest
import pytest_asyncio

from config import Config
from core import (
    ChatEngine,
    Event,
    MessageStore,
    SessionLock,
    SessionStore,
    SystemPrompt,
)
from provider import (
    Finish,
    GenerateRequest,
    GenerateResult,
    ModelCost,
    ModelHandle,
    ModelInfo,
    ModelLimit,
    ProviderRegistry,
    StepFinish,
    StepStart,
    StreamRequest,
    TextDelta,
    ToolCallResult,
    Usage,
)
from storage import StorageEngine

PROVIDER_ID = "test"
MODEL_ID = "test-model"


# =============================================================================
# Fakes
# =============================================================================


class RecordingEventBus:
    """EventBus that keeps every published event."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    async def publish(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.type == event_type]


Action = Callable[[StreamRequest], Any]


def call_tool(name: str, tool_call_id: str, args: dict | None = None) -> Action:
    """Script step: execute a tool adapter and emit its result event."""

    async def action(request: StreamRequest) -> ToolCallResult:
        output = await request.tools[name].execute(args or {}, tool_call_id)
        return ToolCallResult(tool_call_id=tool_call_id, tool_name=name, result=output)

    return action


def wait_for(event: asyncio.Event) -> Action:
    """Script step: block the stream until ``event`` is set."""

    async def action(request: StreamRequest) -> None:
        await event.wait()

    return action


def simple_turn(text: str = "Hello world", usage: Usage | None = None) -> list:
    usage = usage or Usage(input_tokens=10, output_tokens=5)
    return [
        StepStart(),
        TextDelta(text=text[:5]),
        TextDelta(text=text[5:]),
        StepFinish(usage=usage, finish_reason="stop"),
        Finish(usage=usage, finish_reason="stop"),
    ]


class ScriptedModel:
    """
    LanguageModel that replays a script.

    Script items are stream events (yielded), exceptions (raised) or
    callables taking the stream request (awaited; a returned event is
    yielded). Each ``stream`` call consumes the next script from ``scripts``.
    """

    def __init__(self, *scripts: list, text: str = "Generated title") -> None:
        self.scripts = list(scripts) or [simple_turn()]
        self.text = text
        self.generate_usage = Usage(input_tokens=40, output_tokens=8)
        self.generate_error: Exception | None = None
        self.stream_requests: list[StreamRequest] = []
        self.generate_requests: list[GenerateRequest] = []

    async def stream(self, request: StreamRequest) -> AsyncIterator:
        self.stream_requests.append(request)
        script = self.scripts.pop(0) if len(self.scripts) > 1 else self.scripts[0]
        for item in script:
            if callable(item):
                item = item(request)
                if inspect.isawaitable(item):
                    item = await item
                if item is None:
                    continue
            if isinstance(item, BaseException):
                raise item
            yield item

    async def generate(self, request: GenerateRequest) -> GenerateResult:
        self.generate_requests.append(request)
        if self.generate_error is not None:
            raise self.generate_error
        return GenerateResult(text=self.text, usage=self.generate_usage)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def event_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def storage(tmp_path: Path, event_bus: RecordingEventBus) -> StorageEngine:
    return StorageEngine(tmp_path / "storage", event_bus)


@pytest.fixture
def messages(storage: StorageEngine, event_bus: RecordingEventBus) -> MessageStore:
    return MessageStore(storage, event_bus)


@pytest_asyncio.fixture
async def sessions(storage, event_bus, messages):
    store = SessionStore(storage, event_bus, messages)
    yield store
    await store.aclose()


@pytest.fixture
def lock() -> SessionLock:
    return SessionLock()


@pytest.fixture
def model_info() -> ModelInfo:
    return ModelInfo(
        id=MODEL_ID,
        limit=ModelLimit(context=10000, output=1000),
        cost=ModelCost(input=3.0, output=15.0),
    )


@pytest.fixture
def model() -> ScriptedModel:
    return ScriptedModel()


@pytest.fixture
def providers(model: ScriptedModel, model_info: ModelInfo) -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register_model(PROVIDER_ID, ModelHandle(language=model, info=model_info))
    return registry


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "project"
    directory.mkdir()
    return directory


@pytest.fixture
def system_prompt(project_dir: Path) -> SystemPrompt:
    return SystemPrompt(project_dir, project_dir, Config(), global_files=[])


@pytest_asyncio.fixture
async def engine(sessions, messages, lock, providers, event_bus, system_prompt):
    chat = ChatEngine(sessions, messages, lock, providers, event_bus, system_prompt)
    yield chat
    await chat.aclose()

"""
Language model backed by pydantic-ai.

Drives ``Agent.iter()`` node by node so every model request becomes one
step: request nodes stream text and tool-call starts, call-tools nodes report
tool calls and their results. Tool adapters from the chat engine are exposed
to pydantic-ai as schema-described tools.
"""

import json
import logging
import re
from typing import Any, AsyncIterator

from pydantic_ai import Agent, RunContext, Tool
from pydantic_ai.exceptions import UserError
from pydantic_ai.messages import (
    FunctionToolCallEvent,
    FunctionToolResultEvent,
    ModelMessage,
    ModelRequest,
    ModelResponse,
    PartDeltaEvent,
    PartStartEvent,
    TextPart as ModelTextPart,
    TextPartDelta,
    ToolCallPart,
    ToolCallPartDelta,
    ToolReturnPart,
    UserPromptPart,
)

from core.models import (
    Message,
    StepStartPart,
    TextPart,
    ToolInvocationPart,
    ToolInvocationResult,
)

from .base import GenerateRequest, GenerateResult, MissingAPIKeyError, StreamRequest, Usage
from .events import (
    Finish,
    StepFinish,
    StepStart,
    StreamEvent,
    TextDelta,
    ToolCall,
    ToolCallDelta,
    ToolCallStreamingStart,
    ToolCallResult,
)
from .tools import ToolAdapter

logger = logging.getLogger(__name__)

EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}
MISSING_RESULT = "request was aborted"
# pydantic-ai names the variable in backticks: "Set the `ANTHROPIC_API_KEY` environment variable ..."
API_KEY_ENV_PATTERN = re.compile(r"`([A-Z][A-Z0-9_]*_API_KEY)`")


# =============================================================================
# History conversion
# =============================================================================


def message_text(message: Message) -> str:
    """Concatenate the text parts of a message."""
    return "".join(part.text for part in message.parts if isinstance(part, TextPart))


def to_model_messages(messages: list[Message]) -> list[ModelMessage]:
    """
    Convert stored messages into pydantic-ai message history.

    Each step of an assistant message (delimited by step-start parts) becomes
    a ModelResponse, followed by a ModelRequest carrying the step's tool
    returns when it called tools.
    """
    history: list[ModelMessage] = []
    for message in messages:
        if message.role == "user":
            history.append(ModelRequest(parts=[UserPromptPart(content=message_text(message))]))
            continue

        response_parts: list[Any] = []
        returns: list[Any] = []

        def flush() -> None:
            if response_parts:
                history.append(ModelResponse(parts=list(response_parts)))
            if returns:
                history.append(ModelRequest(parts=list(returns)))
            response_parts.clear()
            returns.clear()

        for part in message.parts:
            if isinstance(part, StepStartPart):
                flush()
            elif isinstance(part, TextPart):
                if part.text:
                    response_parts.append(ModelTextPart(content=part.text))
            elif isinstance(part, ToolInvocationPart):
                invocation = part.toolInvocation
                response_parts.append(
                    ToolCallPart(
                        tool_name=invocation.toolName,
                        args=invocation.args,
                        tool_call_id=invocation.toolCallId,
                    )
                )
                result = (
                    invocation.result
                    if isinstance(invocation, ToolInvocationResult)
                    else MISSING_RESULT
                )
                returns.append(
                    ToolReturnPart(
                        tool_name=invocation.toolName,
                        content=result,
                        tool_call_id=invocation.toolCallId,
                    )
                )
        flush()
    return history


def split_prompt(messages: list[Message]) -> tuple[str | None, list[ModelMessage]]:
    """Separate the trailing user message (the prompt) from prior history."""
    if messages and messages[-1].role == "user":
        return message_text(messages[-1]), to_model_messages(messages[:-1])
    return None, to_model_messages(messages)


# =============================================================================
# Event and usage conversion
# =============================================================================


def convert_usage(usage: Any) -> Usage:
    details = getattr(usage, "details", None) or {}
    return Usage(
        input_tokens=usage.input_tokens or 0,
        output_tokens=usage.output_tokens or 0,
        reasoning_tokens=details.get("reasoning_tokens", 0),
    )


def subtract_usage(total: Usage, previous: Usage) -> Usage:
    return Usage(
        input_tokens=total.input_tokens - previous.input_tokens,
        output_tokens=total.output_tokens - previous.output_tokens,
        reasoning_tokens=total.reasoning_tokens - previous.reasoning_tokens,
    )


def convert_request_event(event: Any) -> StreamEvent | None:
    """Convert an event from a model request node."""
    if isinstance(event, PartStartEvent):
        if isinstance(event.part, ModelTextPart) and event.part.content:
            return TextDelta(text=event.part.content)
        if isinstance(event.part, ToolCallPart):
            return ToolCallStreamingStart(
                tool_call_id=event.part.tool_call_id,
                tool_name=event.part.tool_name,
            )
    elif isinstance(event, PartDeltaEvent):
        if isinstance(event.delta, TextPartDelta) and event.delta.content_delta:
            return TextDelta(text=event.delta.content_delta)
        if isinstance(event.delta, ToolCallPartDelta):
            args_delta = event.delta.args_delta
            if args_delta is None:
                return None
            return ToolCallDelta(
                tool_call_id=event.delta.tool_call_id or "",
                tool_name=event.delta.tool_name_delta or "",
                args_text_delta=args_delta if isinstance(args_delta, str) else json.dumps(args_delta),
            )
    return None


def convert_tool_event(event: Any) -> StreamEvent | None:
    """Convert an event from a call-tools node."""
    if isinstance(event, FunctionToolCallEvent):
        return ToolCall(
            tool_call_id=event.part.tool_call_id,
            tool_name=event.part.tool_name,
            args=event.part.args_as_dict(),
        )
    if isinstance(event, FunctionToolResultEvent):
        result = event.result
        if isinstance(result, ToolReturnPart):
            content = result.content if isinstance(result.content, str) else result.model_response_str()
        else:
            content = result.model_response()
        return ToolCallResult(
            tool_call_id=result.tool_call_id,
            tool_name=result.tool_name or "",
            result=content,
        )
    return None


def to_pydantic_tool(name: str, adapter: ToolAdapter) -> Tool:
    """Expose a chat engine tool adapter to pydantic-ai."""

    async def call(ctx: RunContext[None], **kwargs: Any) -> str:
        return await adapter.execute(kwargs, ctx.tool_call_id or "")

    return Tool.from_schema(
        call,
        name=name,
        description=adapter.description,
        json_schema=adapter.parameters or EMPTY_SCHEMA,
        takes_ctx=True,
    )


# =============================================================================
# Language model
# =============================================================================


class PydanticAIModel:
    """
    LanguageModel implementation over a pydantic-ai model.

    Args:
        model: pydantic-ai model name (``"anthropic:claude-..."``) or Model instance
        provider_id: Provider this model belongs to
        settings: Extra pydantic-ai model settings
    """

    def __init__(self, model: Any, provider_id: str = "", settings: dict[str, Any] | None = None):
        self.model = model
        self.provider_id = provider_id
        self.settings = settings or {}

    def _agent(self, system: list[str], tools: list[Tool] | None = None) -> Agent:
        """
        Build the agent for one call.

        Raises:
            MissingAPIKeyError: If pydantic-ai finds no credentials for the model's provider
        """
        instructions = "\n\n".join(s for s in system if s) or None
        try:
            return Agent(self.model, instructions=instructions, tools=tools or [])
        except UserError as e:
            match = API_KEY_ENV_PATTERN.search(str(e))
            if match is None:
                raise
            raise MissingAPIKeyError(self.provider_id, match.group(1)) from e

    def _model_settings(
        self, temperature: float | None, max_tokens: int | None = None
    ) -> dict[str, Any]:
        settings = dict(self.settings)
        if temperature is not None:
            settings["temperature"] = temperature
        if max_tokens is not None:
            settings["max_tokens"] = max_tokens
        return settings

    async def stream(self, request: StreamRequest) -> AsyncIterator[StreamEvent]:
        user_prompt, history = split_prompt(request.messages)
        tools = [to_pydantic_tool(name, adapter) for name, adapter in request.tools.items()]
        agent = self._agent(request.system, tools)
        previous = Usage()

        async with agent.iter(
            user_prompt,
            message_history=history,
            model_settings=self._model_settings(request.temperature),
        ) as run:
            async for node in run:
                if Agent.is_model_request_node(node):
                    yield StepStart()
                    async with node.stream(run.ctx) as request_stream:
                        async for event in request_stream:
                            converted = convert_request_event(event)
                            if converted is not None:
                                yield converted
                    total = convert_usage(run.usage())
                    yield StepFinish(usage=subtract_usage(total, previous))
                    previous = total
                elif Agent.is_call_tools_node(node):
                    async with node.stream(run.ctx) as handle_stream:
                        async for event in handle_stream:
                            converted = convert_tool_event(event)
                            if converted is not None:
                                yield converted
            yield Finish(usage=convert_usage(run.usage()))

    async def generate(self, request: GenerateRequest) -> GenerateResult:
        user_prompt, history = split_prompt(request.messages)
        agent = self._agent(request.system)
        result = await agent.run(
            user_prompt,
            message_history=history,
            model_settings=self._model_settings(request.temperature, request.max_output_tokens),
        )
        return GenerateResult(text=str(result.output), usage=convert_usage(result.usage()))

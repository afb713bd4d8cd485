"""
Tests for the provider registry, error classification and the pydantic-ai adapter.
"""
import anthropic
import httpx
import pytest
from pydantic_ai.exceptions import ModelHTTPError, UserError
from pydantic_ai.messages import (
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
from pydantic_ai.models.test import TestModel as StubModel
from pydantic_ai.usage import RunUsage

from config import Config
from config.defaults import AVAILABLE_MODELS
from core import (
    Message,
    MessageMetadata,
    MessageTime,
    StepStartPart,
    TextPart,
    ToolInvocationCall,
    ToolInvocationPart,
    ToolInvocationResult,
    classify_error,
    is_auth_error,
)
from core.identifier import ascending
from provider import (
    Finish,
    FunctionTool,
    GenerateRequest,
    McpResult,
    MissingAPIKeyError,
    ModelHandle,
    ModelInfo,
    ModelLimit,
    ModelNotFoundError,
    ProviderRegistry,
    StepFinish,
    StepStart,
    StreamRequest,
    TextDelta,
    ToolAdapter,
    ToolCall,
    ToolCallDelta,
    ToolCallResult,
    ToolCallStreamingStart,
    ToolResult,
)
from provider.pydantic_ai_model import (
    MISSING_RESULT,
    PydanticAIModel,
    convert_request_event,
    convert_usage,
    split_prompt,
    to_model_messages,
)


def message(role: str, *parts) -> Message:
    return Message(
        id=ascending("message"),
        role=role,
        parts=list(parts),
        metadata=MessageMetadata(sessionID="ses_1", time=MessageTime(created=1)),
    )


def noop_tool(tool_id: str) -> FunctionTool:
    async def run(args, ctx):
        return ToolResult(output="")

    return FunctionTool(id=tool_id, description="", parameters={}, fn=run)


class TestHistoryConversion:
    """Test converting stored messages to pydantic-ai history."""

    def test_user_and_text(self):
        history = to_model_messages(
            [
                message("user", TextPart(text="Hi "), TextPart(text="there")),
                message("assistant", StepStartPart(), TextPart(text="Hello")),
            ]
        )

        assert len(history) == 2
        assert isinstance(history[0], ModelRequest)
        assert history[0].parts[0].content == "Hi there"
        assert isinstance(history[1], ModelResponse)
        assert history[1].parts[0].content == "Hello"

    def test_tool_steps(self):
        """Each step becomes a response followed by its tool returns."""
        assistant = message(
            "assistant",
            StepStartPart(),
            TextPart(text="Let me look"),
            ToolInvocationPart(
                toolInvocation=ToolInvocationResult(
                    toolCallId="c1", toolName="read", args={"path": "a"}, result="contents"
                )
            ),
            StepStartPart(),
            TextPart(text="Done"),
        )

        history = to_model_messages([assistant])

        assert [type(m) for m in history] == [ModelResponse, ModelRequest, ModelResponse]
        call = history[0].parts[1]
        assert isinstance(call, ToolCallPart)
        assert (call.tool_name, call.tool_call_id, call.args) == ("read", "c1", {"path": "a"})
        returned = history[1].parts[0]
        assert isinstance(returned, ToolReturnPart)
        assert (returned.tool_call_id, returned.content) == ("c1", "contents")
        assert history[2].parts[0].content == "Done"

    def test_unfinished_call_gets_placeholder(self):
        assistant = message(
            "assistant",
            ToolInvocationPart(toolInvocation=ToolInvocationCall(toolCallId="c1", toolName="bash")),
        )
        history = to_model_messages([assistant])
        assert history[1].parts[0].content == MISSING_RESULT

    def test_split_prompt(self):
        first = message("user", TextPart(text="one"))
        reply = message("assistant", TextPart(text="two"))
        last = message("user", TextPart(text="three"))

        prompt, history = split_prompt([first, reply, last])

        assert prompt == "three"
        assert len(history) == 2
        assert isinstance(history[0].parts[0], UserPromptPart)

    def test_split_prompt_without_trailing_user(self):
        prompt, history = split_prompt([message("assistant", TextPart(text="x"))])
        assert prompt is None
        assert len(history) == 1


class TestEventConversion:
    """Test converting pydantic-ai stream events."""

    def test_text(self):
        start = PartStartEvent(index=0, part=ModelTextPart(content="Hel"))
        delta = PartDeltaEvent(index=0, delta=TextPartDelta(content_delta="lo"))

        assert convert_request_event(start) == TextDelta(text="Hel")
        assert convert_request_event(delta) == TextDelta(text="lo")

    def test_empty_text_start(self):
        assert convert_request_event(PartStartEvent(index=0, part=ModelTextPart(content=""))) is None

    def test_tool_call_start_and_delta(self):
        start = PartStartEvent(index=1, part=ToolCallPart(tool_name="bash", args=None, tool_call_id="c1"))
        delta = PartDeltaEvent(index=1, delta=ToolCallPartDelta(args_delta='{"cmd"', tool_call_id="c1"))

        assert convert_request_event(start) == ToolCallStreamingStart(tool_call_id="c1", tool_name="bash")
        assert convert_request_event(delta) == ToolCallDelta(
            tool_call_id="c1", tool_name="", args_text_delta='{"cmd"'
        )

    def test_usage(self):
        usage = convert_usage(RunUsage(input_tokens=12, output_tokens=4, details={"reasoning_tokens": 2}))
        assert (usage.input_tokens, usage.output_tokens, usage.reasoning_tokens) == (12, 4, 2)


class TestPydanticAIModel:
    """Test the adapter against pydantic-ai's test model."""

    @pytest.mark.asyncio
    async def test_generate(self):
        model = PydanticAIModel(StubModel(custom_output_text="Fix the parser"), "test")

        result = await model.generate(
            GenerateRequest(system=["Title it"], messages=[message("user", TextPart(text="parser bug"))])
        )

        assert result.text == "Fix the parser"
        assert result.usage.output_tokens > 0

    @pytest.mark.asyncio
    async def test_stream_text(self):
        model = PydanticAIModel(StubModel(custom_output_text="hello there world"), "test")

        events = [
            event
            async for event in model.stream(
                StreamRequest(system=["Be kind"], messages=[message("user", TextPart(text="hi"))])
            )
        ]

        assert isinstance(events[0], StepStart)
        assert isinstance(events[-1], Finish)
        assert any(isinstance(e, StepFinish) for e in events)
        text = "".join(e.text for e in events if isinstance(e, TextDelta))
        assert text == "hello there world"

    @pytest.mark.asyncio
    async def test_stream_tool_call(self):
        calls = []

        async def execute(args, tool_call_id):
            calls.append((args, tool_call_id))
            return "echoed"

        adapter = ToolAdapter(
            id="echo",
            description="Echo text",
            parameters={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"],
            },
            execute=execute,
        )
        model = PydanticAIModel(StubModel(call_tools=["echo"], custom_output_text="done"), "test")

        events = [
            event
            async for event in model.stream(
                StreamRequest(
                    system=[],
                    messages=[message("user", TextPart(text="echo something"))],
                    tools={"echo": adapter},
                )
            )
        ]

        assert len(calls) == 1
        assert "text" in calls[0][0]
        call = next(e for e in events if isinstance(e, ToolCall))
        result = next(e for e in events if isinstance(e, ToolCallResult))
        assert call.tool_name == "echo"
        assert result.tool_call_id == call.tool_call_id == calls[0][1]
        assert result.result == "echoed"
        assert sum(isinstance(e, StepStart) for e in events) == 2

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        """Missing provider credentials surface as MissingAPIKeyError."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        model = PydanticAIModel("anthropic:claude-sonnet-4-20250514", "anthropic")
        request = StreamRequest(system=[], messages=[message("user", TextPart(text="hi"))])

        with pytest.raises(MissingAPIKeyError) as exc:
            async for _ in model.stream(request):
                pass

        assert exc.value.provider_id == "anthropic"
        assert exc.value.env_key == "ANTHROPIC_API_KEY"
        assert classify_error(exc.value, "anthropic").name == "ProviderAuthError"

    @pytest.mark.asyncio
    async def test_other_user_errors_propagate(self, monkeypatch):
        def broken(*args, **kwargs):
            raise UserError("Unknown model: nope")

        monkeypatch.setattr("provider.pydantic_ai_model.Agent", broken)
        model = PydanticAIModel("nope", "test")

        with pytest.raises(UserError):
            await model.generate(GenerateRequest(system=[], messages=[message("user", TextPart(text="hi"))]))


class TestRegistry:
    """Test model and tool lookup."""

    @pytest.mark.asyncio
    async def test_get_model(self, providers, model_info):
        handle = await providers.get_model("test", "test-model")
        assert handle.info == model_info

    @pytest.mark.asyncio
    async def test_unknown_model(self, providers):
        with pytest.raises(ModelNotFoundError, match="Model not found: test/nope"):
            await providers.get_model("test", "nope")
        with pytest.raises(ModelNotFoundError):
            await providers.get_model("other", "test-model")

    @pytest.mark.asyncio
    async def test_tools_order(self):
        registry = ProviderRegistry()
        shared = noop_tool("shared")
        specific = noop_tool("specific")
        other = noop_tool("other")
        registry.register_tool(shared)
        registry.register_tool(specific, "anthropic")
        registry.register_tool(other, "openai")

        assert await registry.tools("anthropic") == [specific, shared]
        assert await registry.tools("unknown") == [shared]

    @pytest.mark.asyncio
    async def test_from_config(self):
        registry = ProviderRegistry.from_config(Config())

        assert len(registry.models()) == len(AVAILABLE_MODELS)
        handle = await registry.get_model("anthropic", "claude-sonnet-4-20250514")
        assert handle.info.limit.context == 200000
        assert handle.info.cost.input == 3.0
        assert isinstance(handle.language, PydanticAIModel)

    def test_models_listing(self):
        registry = ProviderRegistry()
        info = ModelInfo(id="m", limit=ModelLimit(context=10))
        registry.register_model("p", ModelHandle(language=None, info=info))
        assert registry.models() == [("p", info)]


class TestErrorClassification:
    """Test mapping stream failures to named errors."""

    def test_missing_key(self):
        error = classify_error(MissingAPIKeyError("anthropic", "ANTHROPIC_API_KEY"), "anthropic")
        assert error.to_object() == {
            "name": "ProviderAuthError",
            "data": {
                "providerID": "anthropic",
                "message": "No API key found for provider anthropic (set ANTHROPIC_API_KEY)",
            },
        }

    def test_anthropic_auth(self):
        response = httpx.Response(401, request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
        error = anthropic.AuthenticationError("invalid x-api-key", response=response, body=None)
        assert is_auth_error(error)
        assert classify_error(error, "anthropic").name == "ProviderAuthError"

    def test_http_status(self):
        assert is_auth_error(ModelHTTPError(status_code=403, model_name="m"))
        assert not is_auth_error(ModelHTTPError(status_code=500, model_name="m"))

    def test_user_error_mentioning_key(self):
        assert is_auth_error(UserError("Set the `ANTHROPIC_API_KEY` environment variable"))
        assert not is_auth_error(UserError("Unknown model"))

    def test_unknown(self):
        assert classify_error(RuntimeError("boom"), "p").to_object() == {
            "name": "UnknownError",
            "data": {"message": "boom"},
        }
        assert classify_error(TimeoutError(), "p").data["message"] == "TimeoutError"

    def test_non_exception_payload(self):
        assert classify_error({"code": 1}, "p").data["message"] == '{"code": 1}'
        assert classify_error(object, "p").data["message"].startswith("<class")


class TestMcpResult:
    def test_text_joins_text_content(self):
        result = McpResult(
            content=[
                {"type": "text", "text": "a"},
                {"type": "image", "data": "..."},
                {"type": "text", "text": "b"},
            ]
        )
        assert result.text() == "a\n\nb"

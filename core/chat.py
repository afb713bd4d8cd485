"""
The chat turn loop.

A turn persists the user message, creates an assistant message, and streams
the model's response into it. Every stream event is persisted as it arrives,
so a crash mid-turn leaves the progress so far on disk. A turn always ends
with a well-formed message: stream failures are recorded on the message as
data, and tool invocations that never got a result are closed with a
synthetic one.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from config.defaults import MAX_COMPACTIONS_PER_CHAT, TITLE_MAX_OUTPUT_TOKENS
from provider import (
    Finish,
    GenerateRequest,
    McpResult,
    McpTool,
    McpToolSource,
    ModelHandle,
    ProviderRegistry,
    StepFinish,
    StepStart,
    StreamError,
    StreamEvent,
    StreamRequest,
    TextDelta,
    Tool,
    ToolAdapter,
    ToolCall,
    ToolCallDelta,
    ToolCallResult,
    ToolCallStreamingStart,
    ToolContext,
)

from .compaction import Summarizer, needs_compaction, window_since_summary
from .errors import classify_error
from .events import MESSAGE_PART_UPDATED, SESSION_ERROR, Event, EventBus, NullEventBus
from .identifier import ascending
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
    StepStartPart,
    TextPart,
    ToolInvocationCall,
    ToolInvocationPart,
    ToolInvocationPartialCall,
    ToolInvocationResult,
    now_ms,
)
from .sessions import SessionStore
from .system_prompt import SystemPrompt
from .tasks import BackgroundTasks
from .usage import compute_usage

logger = logging.getLogger(__name__)

ABORTED_RESULT = "request was aborted"
MCP_ERROR_TITLE = "mcp"


@dataclass
class ChatRequest:
    """
    Input of one chat turn.

    ``system`` replaces the provider's default system text; ``tools`` replaces
    the provider's native tools for this turn.
    """

    sessionID: str
    providerID: str
    modelID: str
    parts: list[Part]
    system: list[str] | None = None
    tools: list[Tool] | None = None


def find_invocation(message: Message, tool_call_id: str) -> ToolInvocationPart | None:
    for part in message.parts:
        if isinstance(part, ToolInvocationPart) and part.toolInvocation.toolCallId == tool_call_id:
            return part
    return None


def close_invocations(message: Message) -> int:
    """
    Force every unfinished tool invocation into a result.

    Returns:
        Number of invocations that had to be closed
    """
    closed = 0
    for part in message.parts:
        if not isinstance(part, ToolInvocationPart):
            continue
        invocation = part.toolInvocation
        if isinstance(invocation, ToolInvocationResult):
            continue
        part.toolInvocation = ToolInvocationResult(
            toolCallId=invocation.toolCallId,
            toolName=invocation.toolName,
            args=invocation.args,
            result=ABORTED_RESULT,
        )
        closed += 1
    return closed


class ChatEngine:
    """
    Runs chat turns against provider models.

    Args:
        sessions: Session store
        messages: Message store
        lock: Per-session generation lock
        providers: Model and tool registry
        event_bus: Bus for message and session events
        system_prompt: System prompt builder for the project
        summarizer: Summarizer used when the context window fills up
        mcp: Source of MCP tools, if any servers are connected
        max_compactions: Summarize-and-retry attempts per chat call
    """

    def __init__(
        self,
        sessions: SessionStore,
        messages: MessageStore,
        lock: SessionLock,
        providers: ProviderRegistry,
        event_bus: EventBus | None,
        system_prompt: SystemPrompt,
        summarizer: Summarizer | None = None,
        mcp: McpToolSource | None = None,
        max_compactions: int = MAX_COMPACTIONS_PER_CHAT,
    ):
        self.sessions = sessions
        self.messages = messages
        self.lock = lock
        self.providers = providers
        self.event_bus = event_bus or NullEventBus()
        self.system_prompt = system_prompt
        self.summarizer = summarizer or Summarizer(messages, lock, providers, system_prompt)
        self.mcp = mcp
        self.max_compactions = max_compactions
        self.background = BackgroundTasks()

    # =========================================================================
    # Public operations
    # =========================================================================

    async def chat(self, request: ChatRequest) -> Message:
        """
        Run one chat turn.

        Stream and tool failures do not raise; they are recorded on the
        returned message.

        Args:
            request: The turn input

        Returns:
            The finalized assistant message

        Raises:
            NotFoundError: If the session does not exist
            ModelNotFoundError: If the model is unknown
            BusyError: If the session already has a generation in flight
        """
        return await self._chat(request, compactions=0)

    async def summarize(self, session_id: str, provider_id: str, model_id: str) -> Message:
        await self.sessions.get(session_id)
        return await self.summarizer.summarize(session_id, provider_id, model_id)

    async def initialize(self, session_id: str, provider_id: str, model_id: str) -> Message:
        """Ask the model to analyze the project and write its AGENTS.md."""
        return await self.chat(
            ChatRequest(
                sessionID=session_id,
                providerID=provider_id,
                modelID=model_id,
                parts=[TextPart(text=self.system_prompt.initialize())],
            )
        )

    def abort(self, session_id: str) -> bool:
        return self.lock.abort(session_id)

    async def aclose(self) -> None:
        await self.background.aclose()

    # =========================================================================
    # Turn loop
    # =========================================================================

    async def _chat(self, request: ChatRequest, compactions: int) -> Message:
        session_id = request.sessionID
        logger.info("Chatting in session %s with %s/%s", session_id, request.providerID, request.modelID)
        await self.sessions.get(session_id)
        model = await self.providers.get_model(request.providerID, request.modelID)
        history = await self.messages.list(session_id)

        if needs_compaction(history[-1] if history else None, model.info):
            if compactions < self.max_compactions:
                await self.summarizer.summarize(session_id, request.providerID, request.modelID)
                return await self._chat(request, compactions + 1)
            logger.warning(
                "Session %s still near the context limit after %d compactions, continuing",
                session_id,
                compactions,
            )

        with self.lock.acquire(session_id) as handle:
            # Re-read under the lock; a turn may have finished since the read above
            history = await self.messages.list(session_id)
            return await self._turn(request, model, window_since_summary(history), handle)

    async def _turn(
        self,
        request: ChatRequest,
        model: ModelHandle,
        history: list[Message],
        handle: AbortHandle,
    ) -> Message:
        session_id = request.sessionID
        if not history:
            self.background.spawn(
                self._generate_title(request, model), name=f"title {session_id}"
            )

        user = Message(
            id=ascending("message"),
            role="user",
            parts=list(request.parts),
            metadata=MessageMetadata(sessionID=session_id, time=MessageTime(created=now_ms())),
        )
        await self.messages.update(user)
        history = [*history, user]

        system = await self.system_prompt.build(request.providerID, request.modelID, request.system)
        assistant = Message(
            id=ascending("message"),
            role="assistant",
            parts=[],
            metadata=MessageMetadata(
                sessionID=session_id,
                time=MessageTime(created=now_ms()),
                assistant=AssistantMetadata(
                    system=system,
                    modelID=request.modelID,
                    providerID=request.providerID,
                    path=PathInfo(
                        cwd=str(self.system_prompt.directory),
                        root=str(self.system_prompt.worktree),
                    ),
                ),
            ),
        )
        await self.messages.update(assistant)

        stream_request = StreamRequest(
            system=system,
            messages=history,
            tools=await self._tools(request, assistant, handle),
            abort=handle,
            temperature=0,
        )
        consume = asyncio.ensure_future(self._consume(model, stream_request, assistant))
        handle.attach(consume)
        try:
            await consume
        except asyncio.CancelledError:
            if not handle.aborted:
                raise
            logger.info("Chat in session %s aborted", session_id)
        except Exception as e:
            await self._record_error(assistant, e)

        assistant.metadata.time.completed = now_ms()
        closed = close_invocations(assistant)
        if closed:
            logger.info("Closed %d unfinished tool calls in %s", closed, assistant.id)
        await self.messages.update(assistant)
        return assistant

    async def _consume(self, model: ModelHandle, request: StreamRequest, assistant: Message) -> None:
        stream = model.language.stream(request)
        try:
            text: TextPart | None = None
            async for event in stream:
                logger.debug("part %s in %s", type(event).__name__, assistant.id)
                if isinstance(event, StepFinish):
                    await self._step_finish(model, assistant, event, text)
                    text = None
                else:
                    text = await self._apply(model, assistant, event, text)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _apply(
        self,
        model: ModelHandle,
        assistant: Message,
        event: StreamEvent,
        text: TextPart | None,
    ) -> TextPart | None:
        """Apply one stream event to the assistant message; returns the open text part."""
        if isinstance(event, StepStart):
            part = StepStartPart()
            assistant.parts.append(part)
            await self._part_updated(assistant, part)

        elif isinstance(event, TextDelta):
            if text is None:
                text = TextPart(text=event.text)
                assistant.parts.append(text)
            else:
                text.text += event.text
            await self._part_updated(assistant, text)

        elif isinstance(event, ToolCallStreamingStart):
            part = ToolInvocationPart(
                toolInvocation=ToolInvocationPartialCall(
                    toolCallId=event.tool_call_id,
                    toolName=event.tool_name,
                )
            )
            assistant.parts.append(part)
            await self._part_updated(assistant, part)

        elif isinstance(event, ToolCallDelta):
            pass

        elif isinstance(event, ToolCall):
            part = find_invocation(assistant, event.tool_call_id)
            invocation = ToolInvocationCall(
                toolCallId=event.tool_call_id,
                toolName=event.tool_name,
                args=event.args,
            )
            if part is None:
                part = ToolInvocationPart(toolInvocation=invocation)
                assistant.parts.append(part)
            else:
                part.toolInvocation = invocation
            await self._part_updated(assistant, part)

        elif isinstance(event, ToolCallResult):
            part = find_invocation(assistant, event.tool_call_id)
            if part is None:
                logger.warning("Result for unknown tool call %s", event.tool_call_id)
                return text
            previous = part.toolInvocation
            part.toolInvocation = ToolInvocationResult(
                toolCallId=event.tool_call_id,
                toolName=event.tool_name or previous.toolName,
                args=event.args if event.args is not None else previous.args,
                result=event.result,
            )
            await self._part_updated(assistant, part)

        elif isinstance(event, Finish):
            cost, _ = compute_usage(model.info, event.usage)
            assistant.metadata.assistant.cost = cost
            await self.messages.update(assistant)

        elif isinstance(event, StreamError):
            await self._record_error(assistant, event.error)

        else:
            logger.info("Unhandled stream event %s", type(event).__name__)

        return text

    async def _step_finish(
        self,
        model: ModelHandle,
        assistant: Message,
        event: StepFinish,
        text: TextPart | None,
    ) -> None:
        logger.info("Step finish in %s: %s", assistant.id, event.finish_reason)
        metadata = assistant.metadata.assistant
        cost, tokens = compute_usage(model.info, event.usage)
        metadata.cost += cost
        metadata.tokens = tokens
        await self.messages.update(assistant)
        if text is not None:
            await self._publish_part(assistant, text)

    # =========================================================================
    # Tools
    # =========================================================================

    async def _tools(
        self, request: ChatRequest, assistant: Message, handle: AbortHandle
    ) -> dict[str, ToolAdapter]:
        """Adapters for every MCP and native tool; native tools win on name clashes."""
        context = ToolContext(sessionID=request.sessionID, messageID=assistant.id, abort=handle)
        adapters: dict[str, ToolAdapter] = {}
        if self.mcp is not None:
            for name, tool in (await self.mcp.tools()).items():
                adapters[name] = self._adapter(name, tool, assistant, context, MCP_ERROR_TITLE)

        native = request.tools if request.tools is not None else await self.providers.tools(request.providerID)
        for tool in native:
            name = tool.id.replace(".", "_")
            adapters[name] = self._adapter(name, tool, assistant, context)
        return adapters

    def _adapter(
        self,
        name: str,
        tool: Tool | McpTool,
        assistant: Message,
        context: ToolContext,
        error_title: str | None = None,
    ) -> ToolAdapter:
        async def execute(args: dict[str, Any], tool_call_id: str) -> str:
            start = now_ms()
            try:
                result = await tool.execute(args, context)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                message = str(e) or type(e).__name__
                logger.warning("Tool %s failed in %s: %s", name, assistant.id, message)
                assistant.metadata.tool[tool_call_id] = {
                    "error": True,
                    "message": message,
                    "title": error_title or message,
                    "time": {"start": start, "end": now_ms()},
                }
                await self.messages.update(assistant)
                return message

            output = result.text() if isinstance(result, McpResult) else result.output
            assistant.metadata.tool[tool_call_id] = {
                **result.metadata,
                "time": {"start": start, "end": now_ms()},
            }
            await self.messages.update(assistant)
            return output

        return ToolAdapter(
            id=name,
            description=tool.description,
            parameters=tool.parameters,
            execute=execute,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _part_updated(self, assistant: Message, part: Part) -> None:
        await self.messages.update(assistant)
        await self._publish_part(assistant, part)

    async def _publish_part(self, assistant: Message, part: Part) -> None:
        await self.event_bus.publish(
            Event(
                type=MESSAGE_PART_UPDATED,
                properties={
                    "part": part.model_dump(mode="json"),
                    "messageID": assistant.id,
                    "sessionID": assistant.metadata.sessionID,
                },
            )
        )

    async def _record_error(self, assistant: Message, error: BaseException | object) -> None:
        provider_id = assistant.metadata.assistant.providerID
        named = classify_error(error, provider_id)
        logger.error("Stream error in session %s: %s", assistant.metadata.sessionID, named)
        assistant.metadata.error = named.to_object()
        await self.messages.update(assistant)
        await self.event_bus.publish(
            Event(
                type=SESSION_ERROR,
                properties={
                    "sessionID": assistant.metadata.sessionID,
                    "error": assistant.metadata.error,
                },
            )
        )

    async def _generate_title(self, request: ChatRequest, model: ModelHandle) -> None:
        prompt = Message(
            id=ascending("message"),
            role="user",
            parts=list(request.parts),
            metadata=MessageMetadata(sessionID=request.sessionID, time=MessageTime(created=now_ms())),
        )
        result = await model.language.generate(
            GenerateRequest(
                system=self.system_prompt.title(request.providerID),
                messages=[prompt],
                max_output_tokens=TITLE_MAX_OUTPUT_TOKENS,
                temperature=0,
            )
        )
        title = result.text.strip()
        if not title:
            return

        def rename(session: Session) -> None:
            session.title = title

        await self.sessions.update(request.sessionID, rename)

"""
Tests for context compaction.
"""
import pytest

from conftest import MODEL_ID, PROVIDER_ID, ScriptedModel
from core import (
    AssistantMetadata,
    BusyError,
    ChatEngine,
    ChatRequest,
    CoreError,
    Message,
    MessageMetadata,
    MessageTime,
    NotFoundError,
    PathInfo,
    Summarizer,
    TextPart,
    TokenInfo,
    needs_compaction,
    window_since_summary,
)
from core.identifier import ascending
from core.system_prompt import SUMMARIZE_INSTRUCTION
from provider import Usage


def user(session_id: str, text: str = "hi") -> Message:
    return Message(
        id=ascending("message"),
        role="user",
        parts=[TextPart(text=text)],
        metadata=MessageMetadata(sessionID=session_id, time=MessageTime(created=1)),
    )


def assistant(
    session_id: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    summary: bool | None = None,
    text: str = "reply",
) -> Message:
    return Message(
        id=ascending("message"),
        role="assistant",
        parts=[TextPart(text=text)],
        metadata=MessageMetadata(
            sessionID=session_id,
            time=MessageTime(created=1, completed=2),
            assistant=AssistantMetadata(
                modelID=MODEL_ID,
                providerID=PROVIDER_ID,
                path=PathInfo(cwd="/", root="/"),
                tokens=TokenInfo(input=input_tokens, output=output_tokens),
                summary=summary,
            ),
        ),
    )


@pytest.fixture
def summarizer(messages, lock, providers, system_prompt) -> Summarizer:
    return Summarizer(messages, lock, providers, system_prompt)


class TestNeedsCompaction:
    """Test the compaction threshold."""

    def test_no_previous(self, model_info):
        """An empty session never needs compaction."""
        assert needs_compaction(None, model_info) is False

    def test_user_message(self, model_info):
        """User messages carry no usage."""
        assert needs_compaction(user("ses_1"), model_info) is False

    def test_below_threshold(self, model_info):
        """Usage under 90% of usable context is fine."""
        # usable = 10000 - 1000 = 9000; threshold = 8100
        assert needs_compaction(assistant("ses_1", 8000, 100), model_info) is False

    def test_above_threshold(self, model_info):
        """Usage over 90% of usable context needs compaction."""
        assert needs_compaction(assistant("ses_1", 8000, 101), model_info) is True

    def test_summary_counts_output_only(self, model_info):
        """A summary's input tokens do not count."""
        assert needs_compaction(assistant("ses_1", 9500, 100, summary=True), model_info) is False
        assert needs_compaction(assistant("ses_1", 0, 8200, summary=True), model_info) is True


class TestWindow:
    """Test the history window sent to the model."""

    def test_without_summary(self):
        """Everything is sent when there is no summary."""
        history = [user("ses_1"), assistant("ses_1")]
        assert window_since_summary(history) == history

    def test_from_latest_summary(self):
        """Only the latest summary and newer messages are sent."""
        old = [user("ses_1"), assistant("ses_1")]
        first = assistant("ses_1", summary=True, text="first summary")
        middle = [user("ses_1"), assistant("ses_1")]
        second = assistant("ses_1", summary=True, text="second summary")
        tail = [user("ses_1")]

        window = window_since_summary([*old, first, *middle, second, *tail])

        assert window == [second, *tail]


class TestSummarizer:
    """Test producing summary messages."""

    @pytest.mark.asyncio
    async def test_persists_summary(self, summarizer, messages, model: ScriptedModel, project_dir):
        """The summary is stored as an assistant message flagged summary."""
        history = [user("ses_1", "build it"), assistant("ses_1")]
        for message in history:
            await messages.update(message)
        model.text = "  We built it.  "

        summary = await summarizer.summarize("ses_1", PROVIDER_ID, MODEL_ID)

        assert summary.is_summary
        assert summary.parts == [TextPart(text="We built it.")]
        info = summary.metadata.assistant
        assert info.cost == pytest.approx((40 * 3 + 8 * 15) / 1_000_000)
        assert (info.tokens.input, info.tokens.output) == (40, 8)
        assert info.path == PathInfo(cwd=str(project_dir), root=str(project_dir))
        assert summary.metadata.time.completed is not None
        assert (await messages.list("ses_1"))[-1] == summary

        request = model.generate_requests[0]
        assert [m.id for m in request.messages[:-1]] == [m.id for m in history]
        assert request.messages[-1].parts == [TextPart(text=SUMMARIZE_INSTRUCTION)]
        assert len(await messages.list("ses_1")) == 3

    @pytest.mark.asyncio
    async def test_summarizes_since_latest_summary(self, summarizer, messages, model: ScriptedModel):
        """Only messages from the previous summary onward are summarized."""
        old = user("ses_1", "old")
        previous = assistant("ses_1", summary=True, text="earlier")
        recent = user("ses_1", "recent")
        for message in [old, previous, recent]:
            await messages.update(message)

        await summarizer.summarize("ses_1", PROVIDER_ID, MODEL_ID)

        sent = model.generate_requests[0].messages
        assert [m.id for m in sent[:-1]] == [previous.id, recent.id]

    @pytest.mark.asyncio
    async def test_failure(self, summarizer, messages, model: ScriptedModel, lock):
        """A failing model raises CoreError and persists nothing."""
        await messages.update(user("ses_1"))
        model.generate_error = RuntimeError("overloaded")

        with pytest.raises(CoreError, match="overloaded"):
            await summarizer.summarize("ses_1", PROVIDER_ID, MODEL_ID)

        assert len(await messages.list("ses_1")) == 1
        assert not lock.is_busy("ses_1")

    @pytest.mark.asyncio
    async def test_empty_summary(self, summarizer, messages, model: ScriptedModel):
        """Blank output is rejected."""
        await messages.update(user("ses_1"))
        model.text = "   "

        with pytest.raises(CoreError, match="No summary generated"):
            await summarizer.summarize("ses_1", PROVIDER_ID, MODEL_ID)
        assert len(await messages.list("ses_1")) == 1

    @pytest.mark.asyncio
    async def test_busy(self, summarizer, lock):
        """A session with a generation in flight cannot be summarized."""
        with lock.acquire("ses_1"):
            with pytest.raises(BusyError):
                await summarizer.summarize("ses_1", PROVIDER_ID, MODEL_ID)

    @pytest.mark.asyncio
    async def test_engine_checks_session(self, engine: ChatEngine):
        """Summarizing an unknown session raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await engine.summarize("ses_missing", PROVIDER_ID, MODEL_ID)


class TestAutoCompaction:
    """Test compaction triggered by chat."""

    async def seed_full_session(self, sessions, messages) -> str:
        session = await sessions.create()
        await messages.update(user(session.id, "long work"))
        await messages.update(assistant(session.id, 8000, 500))
        return session.id

    def request(self, session_id: str) -> ChatRequest:
        return ChatRequest(
            sessionID=session_id,
            providerID=PROVIDER_ID,
            modelID=MODEL_ID,
            parts=[TextPart(text="continue")],
        )

    @pytest.mark.asyncio
    async def test_chat_compacts_first(self, engine: ChatEngine, sessions, messages, model: ScriptedModel):
        """A full context is summarized before the turn; the turn sees only the summary."""
        session_id = await self.seed_full_session(sessions, messages)
        model.text = "Summary of the long work"

        reply = await engine.chat(self.request(session_id))

        stored = await messages.list(session_id)
        assert [m.role for m in stored] == ["user", "assistant", "assistant", "user", "assistant"]
        assert stored[2].is_summary
        assert stored[-1] == reply

        sent = model.stream_requests[0].messages
        assert sent[0].id == stored[2].id
        assert [m.role for m in sent] == ["assistant", "user"]

    @pytest.mark.asyncio
    async def test_no_compaction_below_threshold(self, engine: ChatEngine, sessions, messages, model: ScriptedModel):
        """A session with room left is not summarized."""
        session = await sessions.create()
        await messages.update(user(session.id))
        await messages.update(assistant(session.id, 100, 10))

        await engine.chat(self.request(session.id))

        assert not any(m.is_summary for m in await messages.list(session.id))
        assert model.generate_requests == []

    @pytest.mark.asyncio
    async def test_compaction_is_bounded(self, engine: ChatEngine, sessions, messages, model: ScriptedModel):
        """An oversized summary does not trigger endless compaction."""
        session_id = await self.seed_full_session(sessions, messages)
        model.generate_usage = Usage(input_tokens=0, output_tokens=9000)

        reply = await engine.chat(self.request(session_id))

        summaries = [m for m in await messages.list(session_id) if m.is_summary]
        assert len(summaries) == 1
        assert reply.metadata.error is None
        assert len(model.stream_requests) == 1

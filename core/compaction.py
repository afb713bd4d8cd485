"""
Conversation compaction logic.

When the previous turn used most of the model's context window, the session
is summarized before the next turn. The summary is stored as an assistant
message flagged ``summary=True``; later turns only send messages from the
latest summary onward.
"""

import asyncio
import logging

from config.defaults import COMPACTION_THRESHOLD_RATIO
from provider import GenerateRequest, ModelInfo, ProviderRegistry

from .exceptions import CoreError
from .identifier import ascending
from .lock import SessionLock
from .messages import MessageStore
from .models import (
    AssistantMetadata,
    Message,
    MessageMetadata,
    MessageTime,
    PathInfo,
    TextPart,
    now_ms,
)
from .system_prompt import SUMMARIZE_INSTRUCTION, SystemPrompt
from .usage import compute_usage

logger = logging.getLogger(__name__)


# =============================================================================
# Compaction window
# =============================================================================


def latest_summary(messages: list[Message]) -> Message | None:
    """Return the most recent summary message, if any."""
    for message in reversed(messages):
        if message.is_summary:
            return message
    return None


def window_since_summary(messages: list[Message]) -> list[Message]:
    """
    Drop every message older than the latest summary.

    Args:
        messages: Messages sorted by id

    Returns:
        The summary and everything after it, or all messages without a summary
    """
    summary = latest_summary(messages)
    if summary is None:
        return list(messages)
    return [m for m in messages if m.id >= summary.id]


def needs_compaction(
    previous: Message | None,
    model: ModelInfo,
    ratio: float = COMPACTION_THRESHOLD_RATIO,
) -> bool:
    """
    Check whether the previous turn came too close to the context limit.

    Only an assistant message carries usage. A summary's input tokens
    measure the history it replaced, so only its output counts.
    """
    if previous is None or previous.metadata.assistant is None:
        return False
    assistant = previous.metadata.assistant
    tokens = assistant.tokens.output
    if not assistant.summary:
        tokens += assistant.tokens.input
    usable = model.limit.context - (model.limit.output or 0)
    return tokens > usable * ratio


# =============================================================================
# Summarizer
# =============================================================================


class Summarizer:
    """Produces compaction boundary messages."""

    def __init__(
        self,
        messages: MessageStore,
        lock: SessionLock,
        providers: ProviderRegistry,
        system_prompt: SystemPrompt,
    ):
        self.messages = messages
        self.lock = lock
        self.providers = providers
        self.system_prompt = system_prompt

    async def summarize(self, session_id: str, provider_id: str, model_id: str) -> Message:
        """
        Summarize a session's history since its latest summary.

        Args:
            session_id: Session to summarize
            provider_id: Provider of the summarizing model
            model_id: Summarizing model

        Returns:
            The persisted summary message

        Raises:
            BusyError: If the session has a generation in flight
            ModelNotFoundError: If the model is unknown
            CoreError: If the model fails to produce a summary
        """
        with self.lock.acquire(session_id) as handle:
            history = window_since_summary(await self.messages.list(session_id))
            model = await self.providers.get_model(provider_id, model_id)
            system = self.system_prompt.summarize(provider_id)
            created = now_ms()
            message_id = ascending("message")

            instruction = Message(
                id=ascending("message"),
                role="user",
                parts=[TextPart(text=SUMMARIZE_INSTRUCTION)],
                metadata=MessageMetadata(sessionID=session_id, time=MessageTime(created=created)),
            )
            request = GenerateRequest(
                system=system,
                messages=[*history, instruction],
                abort=handle,
            )

            logger.info("Summarizing %d messages in session %s", len(history), session_id)
            generation = asyncio.ensure_future(model.language.generate(request))
            handle.attach(generation)
            try:
                result = await generation
            except asyncio.CancelledError:
                if not handle.aborted:
                    raise
                raise CoreError(f"Summarization of session {session_id} was aborted") from None
            except Exception as e:
                logger.error("Failed to generate summary: %s", str(e))
                raise CoreError(f"Summarization failed: {str(e)}") from e

            text = result.text.strip()
            if not text:
                raise CoreError("No summary generated")

            cost, tokens = compute_usage(model.info, result.usage)
            summary = Message(
                id=message_id,
                role="assistant",
                parts=[TextPart(text=text)],
                metadata=MessageMetadata(
                    sessionID=session_id,
                    time=MessageTime(created=created, completed=now_ms()),
                    assistant=AssistantMetadata(
                        system=system,
                        modelID=model_id,
                        providerID=provider_id,
                        path=PathInfo(
                            cwd=str(self.system_prompt.directory),
                            root=str(self.system_prompt.worktree),
                        ),
                        cost=cost,
                        tokens=tokens,
                        summary=True,
                    ),
                ),
            )
            await self.messages.update(summary)
            logger.info("Session %s compacted into %s", session_id, summary.id)
            return summary

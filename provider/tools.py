"""
Tool contracts consumed by the chat engine.

Native tools return ``ToolResult``; MCP tools return ``McpResult`` whose
text content is joined into the textual result. The chat engine wraps both
into ``ToolAdapter``s before handing them to the model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol

if TYPE_CHECKING:
    from core.lock import AbortHandle


@dataclass
class ToolContext:
    sessionID: str
    messageID: str
    abort: AbortHandle


@dataclass
class ToolResult:
    output: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class McpResult:
    content: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def text(self) -> str:
        return "\n\n".join(
            item.get("text", "") for item in self.content if item.get("type") == "text"
        )


class Tool(Protocol):
    id: str
    description: str
    parameters: dict[str, Any]

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResult:
        ...


class McpTool(Protocol):
    id: str
    description: str
    parameters: dict[str, Any]

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> McpResult:
        ...


class McpToolSource(Protocol):
    """Supplies the tools of every connected MCP server, keyed by name."""

    async def tools(self) -> dict[str, McpTool]:
        ...


@dataclass
class FunctionTool:
    """Tool backed by a plain coroutine function."""

    id: str
    description: str
    parameters: dict[str, Any]
    fn: Callable[[dict[str, Any], ToolContext], Awaitable[ToolResult]]

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResult:
        return await self.fn(args, ctx)


@dataclass
class ToolAdapter:
    """A tool as the model sees it: execution never raises, it returns text."""

    id: str
    description: str
    parameters: dict[str, Any]
    execute: Callable[[dict[str, Any], str], Awaitable[str]]

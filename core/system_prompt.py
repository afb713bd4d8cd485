"""
System prompt assembly.

A chat turn's system prompt is the explicit override (or the provider's
default text), followed by a description of the environment and any project
instruction files. Instruction files are searched from the working directory
up to the worktree root, then in the global locations.
"""

import asyncio
import logging
import platform
from datetime import date
from pathlib import Path

import git

from config import Config
from config.defaults import AGENT_HOME, PROJECT_TREE_FILE_LIMIT

logger = logging.getLogger(__name__)


# =============================================================================
# Prompt text
# =============================================================================

PROMPT_HEADER = "You are an interactive coding agent that helps users with software engineering tasks."

PROMPT_DEFAULT = """You are a coding agent running in the user's terminal.

You have access to tools for reading, searching and editing files and for
running commands in the project. Use them to understand the code before
changing it.

When helping users, prefer to:
1. Read relevant files first to understand context
2. Make targeted changes rather than rewriting entire files
3. Explain what you're doing and why
4. Verify changes work correctly

Be concise but thorough. If you need to execute code to verify something works, do so."""

PROMPT_TITLE = """Generate a short title for the conversation that follows.

- The title must be a single line of at most 50 characters
- Describe what the user wants to do, not how
- Do not use quotes, punctuation at the end, or markdown
- Respond with the title only"""

PROMPT_SUMMARIZE = """You are a helpful AI assistant tasked with summarizing conversations.

When asked to summarize, provide a detailed but concise summary of the
conversation. Focus on information that would be helpful for continuing the
conversation, including:
- What was done
- What is currently being worked on
- Which files are being modified
- What needs to be done next

Your summary should be comprehensive enough to provide context but concise
enough to be quickly understood."""

SUMMARIZE_INSTRUCTION = (
    "Provide a detailed but concise summary of our conversation above. Focus on "
    "information that would be helpful for continuing the conversation, including "
    "what we did, what we're doing, which files we're working on, and what we're "
    "going to do next."
)

PROMPT_INITIALIZE = """Please analyze this codebase and create an AGENTS.md file in {path} containing:
1. Build/lint/test commands - especially for running a single test
2. Code style guidelines including imports, formatting, types, naming conventions, error handling, etc.

The file you create will be given to agentic coding agents (such as yourself) that operate in this repository. Make it about 20 lines long.
If there are Cursor rules (in .cursor/rules/ or .cursorrules) or Copilot rules (in .github/copilot-instructions.md), make sure to include them.

If there's already an AGENTS.md, improve it."""

# Searched from the working directory up to the worktree root
CUSTOM_FILES = ["AGENTS.md", "CLAUDE.md", "CONTEXT.md"]


# =============================================================================
# File search helpers
# =============================================================================


def find_up(name: str, start: Path, stop: Path) -> list[Path]:
    """
    Find every file called ``name`` from ``start`` up to ``stop`` inclusive.

    Args:
        name: File name to look for
        start: Directory to start from
        stop: Last directory to search (usually the worktree root)

    Returns:
        Matches ordered from the innermost directory outwards
    """
    matches = []
    current = start.resolve()
    stop = stop.resolve()
    while True:
        candidate = current / name
        if candidate.is_file():
            matches.append(candidate)
        if current == stop or current.parent == current:
            break
        current = current.parent
    return matches


def glob_up(pattern: str, start: Path, stop: Path) -> list[Path]:
    """Like ``find_up`` but matching a glob pattern in each directory."""
    expanded = Path(pattern).expanduser()
    if expanded.is_absolute():
        return sorted(p for p in expanded.parent.glob(expanded.name) if p.is_file())

    matches = []
    current = start.resolve()
    stop = stop.resolve()
    while True:
        matches.extend(sorted(p for p in current.glob(pattern) if p.is_file()))
        if current == stop or current.parent == current:
            break
        current = current.parent
    return matches


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return ""


# =============================================================================
# System prompt
# =============================================================================


class SystemPrompt:
    """
    Builds the system prompt pieces for a project.

    Args:
        directory: Working directory of the agent
        worktree: Root of the project (the git worktree, or ``directory``)
        config: Loaded configuration (for ``instructions``)
        global_files: Global instruction files, read when present
    """

    def __init__(
        self,
        directory: Path | str,
        worktree: Path | str | None = None,
        config: Config | None = None,
        global_files: list[Path] | None = None,
    ):
        self.directory = Path(directory)
        self.worktree = Path(worktree) if worktree else self.directory
        self.config = config or Config()
        if global_files is None:
            global_files = [AGENT_HOME / "AGENTS.md", Path.home() / ".claude" / "CLAUDE.md"]
        self.global_files = global_files

    def header(self, provider_id: str) -> list[str]:
        if "anthropic" in provider_id:
            return [PROMPT_HEADER]
        return []

    def provider(self, model_id: str) -> list[str]:
        return [PROMPT_DEFAULT]

    def title(self, provider_id: str) -> list[str]:
        return [*self.header(provider_id), PROMPT_TITLE]

    def summarize(self, provider_id: str) -> list[str]:
        return [*self.header(provider_id), PROMPT_SUMMARIZE]

    def initialize(self) -> str:
        """The project-initialization prompt."""
        return PROMPT_INITIALIZE.format(path=self.worktree)

    @property
    def is_git(self) -> bool:
        return (self.worktree / ".git").exists()

    def _project_files(self) -> list[str]:
        try:
            output = git.Git(str(self.directory)).ls_files()
        except git.GitCommandError as e:
            logger.debug("git ls-files failed in %s: %s", self.directory, e)
            return []
        return output.splitlines()[:PROJECT_TREE_FILE_LIMIT]

    async def environment(self) -> list[str]:
        is_git = self.is_git
        files = await asyncio.to_thread(self._project_files) if is_git else []
        return [
            "\n".join(
                [
                    "Here is some useful information about the environment you are running in:",
                    "<env>",
                    f"  Working directory: {self.directory}",
                    f"  Is directory a git repo: {'yes' if is_git else 'no'}",
                    f"  Platform: {platform.system().lower()}",
                    f"  Today's date: {date.today().strftime('%a %b %d %Y')}",
                    "</env>",
                    "<project>",
                    *(f"  {name}" for name in files),
                    "</project>",
                ]
            )
        ]

    def _custom_paths(self) -> list[Path]:
        paths: dict[Path, None] = {}
        for name in CUSTOM_FILES:
            for match in find_up(name, self.directory, self.worktree):
                paths[match] = None
        for path in self.global_files:
            paths[path] = None
        for pattern in self.config.instructions:
            for match in glob_up(pattern, self.directory, self.worktree):
                paths[match] = None
        return list(paths)

    async def custom(self) -> list[str]:
        """Contents of every instruction file found, unreadable files skipped."""
        paths = await asyncio.to_thread(self._custom_paths)
        contents = await asyncio.gather(*(asyncio.to_thread(_read_text, p) for p in paths))
        return [text for text in contents if text]

    async def build(
        self, provider_id: str, model_id: str, override: list[str] | None = None
    ) -> list[str]:
        """
        Assemble the full system prompt for a chat turn.

        Args:
            provider_id: Provider of the model
            model_id: Model the turn runs against
            override: Explicit system prompt replacing the provider default

        Returns:
            System prompt pieces in order
        """
        if override is not None:
            system = list(override)
        else:
            system = [*self.header(provider_id), *self.provider(model_id)]
        system.extend(await self.environment())
        system.extend(await self.custom())
        return system

"""Default configuration values."""

from pathlib import Path

DEFAULT_PROVIDER = "anthropic"
DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Global agent home; config, instructions and the data directory live here
AGENT_HOME = Path.home() / ".agent"
DEFAULT_DATA_DIR = AGENT_HOME / "data"

# Available models configuration. Costs are USD per million tokens.
AVAILABLE_MODELS = [
    {
        "provider": "anthropic",
        "id": "claude-opus-4-5-20251101",
        "name": "Claude Opus 4.5",
        "context_window": 200000,
        "output_limit": 64000,
        "cost": {"input": 5.0, "output": 25.0},
    },
    {
        "provider": "anthropic",
        "id": "claude-sonnet-4-20250514",
        "name": "Claude Sonnet 4",
        "context_window": 200000,
        "output_limit": 64000,
        "cost": {"input": 3.0, "output": 15.0},
    },
    {
        "provider": "anthropic",
        "id": "claude-haiku-3-5-20241022",
        "name": "Claude Haiku 3.5",
        "context_window": 200000,
        "output_limit": 8192,
        "cost": {"input": 0.8, "output": 4.0},
    },
]

# Compaction Configuration
COMPACTION_THRESHOLD_RATIO = 0.9  # Summarize once the last turn used 90% of usable context
MAX_COMPACTIONS_PER_CHAT = 1  # Summarize-then-retry attempts before giving up on shrinking

# Title generation
TITLE_MAX_OUTPUT_TOKENS = 20

# Session sharing
DEFAULT_SHARE_URL = "https://api.agent.dev"
SHARE_TIMEOUT_SECONDS = 10.0

# System prompt environment
PROJECT_TREE_FILE_LIMIT = 200

"""Main Config model."""

from pydantic import BaseModel, Field

from .defaults import DEFAULT_MODEL, DEFAULT_PROVIDER, DEFAULT_SHARE_URL


class ShareConfig(BaseModel):
    """Session sharing configuration."""

    enabled: bool = Field(
        default=False,
        description="Create share links for new root sessions",
    )
    url: str = Field(
        default=DEFAULT_SHARE_URL,
        description="Base URL of the share service",
    )


class Config(BaseModel):
    """Main configuration model."""

    provider: str = Field(
        default=DEFAULT_PROVIDER,
        description="Default provider identifier",
    )
    model: str = Field(
        default=DEFAULT_MODEL,
        description="Default model identifier",
    )
    data_dir: str | None = Field(
        default=None,
        description="Directory holding storage and snapshots (defaults to ~/.agent/data)",
    )
    snapshot: bool = Field(
        default=True,
        description="Track working tree snapshots",
    )
    instructions: list[str] = Field(
        default_factory=list,
        description="Glob patterns of extra instruction files added to the system prompt",
    )
    share: ShareConfig = Field(
        default_factory=ShareConfig,
        description="Session sharing",
    )

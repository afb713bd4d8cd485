"""Snapshot request models."""

from pydantic import BaseModel, Field

from snapshot import Patch


class RevertRequest(BaseModel):
    patches: list[Patch] = Field(default_factory=list)


class RestoreRequest(BaseModel):
    hash: str

"""
Locate, read and merge agent.jsonc files.

The global file under ~/.agent is read first; the first project file found
is deep-merged over it.
"""

import json
import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from .defaults import AGENT_HOME, DEFAULT_DATA_DIR
from .main_config import Config

logger = logging.getLogger(__name__)

WORKING_DIR_ENV = "WORKING_DIR"
DATA_DIR_ENV = "AGENT_DATA_DIR"

GLOBAL_CONFIG_NAME = "agent.jsonc"
# Checked in order, first hit wins
PROJECT_CONFIG_NAMES = ("agent.jsonc", "agent.json", ".agent/agent.jsonc")

# A string literal is matched first and kept so "https://" survives
_LINE_COMMENT = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*')
_BLOCK_COMMENT = re.compile(r'("(?:\\.|[^"\\])*")|/\*.*?\*/', re.DOTALL)


def _keep_strings(match: re.Match) -> str:
    return match.group(1) or ""


def strip_jsonc_comments(content: str) -> str:
    """Remove // and /* */ comments outside of string literals."""
    content = _BLOCK_COMMENT.sub(_keep_strings, content)
    return _LINE_COMMENT.sub(_keep_strings, content)


def load_config_file(path: Path) -> dict[str, Any] | None:
    """
    Parse one config file.

    Returns:
        The decoded object, or None when the file is missing or unreadable
    """
    if not path.is_file():
        return None
    try:
        text = path.read_text()
        data = json.loads(strip_jsonc_comments(text) if path.suffix == ".jsonc" else text)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring config %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not an object", path)
        return None
    logger.debug("Loaded config %s", path)
    return data


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``; nested dicts merge, anything else replaces."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_configs(current, value)
        else:
            merged[key] = value
    return merged


def _first_project_config(project_root: Path) -> dict[str, Any] | None:
    for name in PROJECT_CONFIG_NAMES:
        data = load_config_file(project_root / name)
        if data:
            return data
    return None


def load_config(project_root: Path | None = None, global_dir: Path | None = None) -> Config:
    """
    Build the effective Config for a project.

    Args:
        project_root: Directory searched for project config files (default: cwd)
        global_dir: Directory holding the user-wide agent.jsonc (default: ~/.agent)
    """
    project_root = project_root or Path.cwd()
    global_dir = global_dir or AGENT_HOME

    data = load_config_file(global_dir / GLOBAL_CONFIG_NAME) or {}
    project = _first_project_config(project_root)
    if project:
        data = merge_configs(data, project)
    return Config.model_validate(data)


def get_working_directory() -> str:
    return os.environ.get(WORKING_DIR_ENV) or os.getcwd()


def get_data_directory(config: Config) -> Path:
    """
    Resolve the directory that holds storage and snapshots.

    Precedence: AGENT_DATA_DIR environment variable, config.data_dir, ~/.agent/data.
    """
    override = os.environ.get(DATA_DIR_ENV) or config.data_dir
    if override:
        return Path(override).expanduser().resolve()
    return DEFAULT_DATA_DIR


@lru_cache(maxsize=1)
def get_config(project_root: Path | None = None) -> Config:
    """Cached load_config; call get_config.cache_clear() to reload."""
    return load_config(project_root)

"""
Configuration module for the agent session core.

Exports the main configuration classes and functions for use throughout the application.
"""

from .defaults import DEFAULT_MODEL, DEFAULT_PROVIDER
from .loader import (
    get_config,
    get_data_directory,
    get_working_directory,
    load_config,
    load_config_file,
    merge_configs,
    strip_jsonc_comments,
)
from .logging_config import log_timing, setup_logging
from .main_config import Config, ShareConfig

__all__ = [
    # Constants
    "DEFAULT_MODEL",
    "DEFAULT_PROVIDER",
    # Config models
    "Config",
    "ShareConfig",
    # Loader functions
    "load_config",
    "get_config",
    "get_working_directory",
    "get_data_directory",
    "load_config_file",
    "merge_configs",
    "strip_jsonc_comments",
    # Logging
    "setup_logging",
    "log_timing",
]

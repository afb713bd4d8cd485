"""Centralized logging configuration."""

import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import Any, Generator, Optional

SIMPLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
)

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"

# Operations slower than this are logged at WARNING by log_timing
SLOW_OPERATION_MS = 2000

# Third-party loggers and the level they are capped at
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "git": logging.WARNING,
    "anthropic": logging.WARNING,
    "pydantic_ai": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.INFO,
}


def setup_logging(level: Optional[str] = None) -> None:
    """Configure logging for the entire application.

    Args:
        level: Log level override. If not provided, uses LOG_LEVEL env var or INFO.
    """
    level_name = (level or os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    # Line numbers only help when debugging
    fmt = DETAILED_FORMAT if log_level == logging.DEBUG else SIMPLE_FORMAT

    logging.basicConfig(
        level=log_level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    for name, cap in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(cap, log_level))


@contextmanager
def log_timing(
    logger: logging.Logger,
    operation: str,
    *args: Any,
    level: int = logging.DEBUG,
) -> Generator[None, None, None]:
    """Log how long the block took.

    ``operation`` is a %-format string filled from ``args``, formatted only
    when the record is emitted. Slow operations are raised to WARNING.

    Example:
        with log_timing(logger, "Snapshot track %s", session_id):
            ...
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        if duration_ms > SLOW_OPERATION_MS:
            level = max(level, logging.WARNING)
        logger.log(level, operation + " completed in %.1fms", *args, duration_ms)

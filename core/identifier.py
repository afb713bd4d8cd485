"""
Sortable identifiers.

An identifier is ``<prefix>_<14 hex chars><12 base62 chars>``. The hex block
encodes ``timestamp_ms * 0x1000 + counter``; the counter disambiguates ids
created within the same millisecond. Ascending ids sort oldest first, so a
plain string sort of message ids reproduces creation order. Descending ids
store the bitwise complement of the same value, so newer sessions sort
first.
"""

import secrets
import string
import time

PREFIXES = {
    "session": "ses",
    "message": "msg",
    "part": "prt",
}

HEX_LENGTH = 14
RANDOM_LENGTH = 12
_BASE62 = string.digits + string.ascii_uppercase + string.ascii_lowercase
_MASK = (1 << (HEX_LENGTH * 4)) - 1


class _Clock:
    """Millisecond clock with a per-millisecond counter."""

    def __init__(self) -> None:
        self.last_timestamp = 0
        self.counter = 0

    def next(self, timestamp: int | None = None) -> int:
        now = timestamp if timestamp is not None else int(time.time() * 1000)
        if now != self.last_timestamp:
            self.last_timestamp = now
            self.counter = 0
        self.counter += 1
        return now * 0x1000 + self.counter


_clock = _Clock()


def _random_base62(length: int) -> str:
    return "".join(secrets.choice(_BASE62) for _ in range(length))


def create(prefix: str, descending: bool, timestamp: int | None = None) -> str:
    """Create a new identifier for the given prefix kind."""
    if prefix not in PREFIXES:
        raise ValueError(f"Unknown identifier prefix: {prefix}")
    value = _clock.next(timestamp)
    if descending:
        value = ~value & _MASK
    return f"{PREFIXES[prefix]}_{value & _MASK:0{HEX_LENGTH}x}{_random_base62(RANDOM_LENGTH)}"


def ascending(prefix: str, given: str | None = None) -> str:
    """Identifier that sorts after every id created before it."""
    if given is not None:
        if not given.startswith(PREFIXES[prefix]):
            raise ValueError(f"ID {given} does not start with {PREFIXES[prefix]}")
        return given
    return create(prefix, descending=False)


def descending(prefix: str, given: str | None = None) -> str:
    """Identifier that sorts before every id created before it."""
    if given is not None:
        if not given.startswith(PREFIXES[prefix]):
            raise ValueError(f"ID {given} does not start with {PREFIXES[prefix]}")
        return given
    return create(prefix, descending=True)

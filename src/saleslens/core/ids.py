"""Injectable id generation and wall-clock access.

Stores and services receive an ``IdGenerator`` and a ``Clock`` instead of
calling ``uuid4()`` / ``time.time()`` directly, so tests can pin both.
"""

from __future__ import annotations

import itertools
import time
import uuid
from typing import Protocol


class IdGenerator(Protocol):
    def new_id(self, prefix: str) -> str: ...


class Clock(Protocol):
    def now_ms(self) -> int: ...


class UuidIdGenerator:
    """Random unique ids of the form ``<prefix>-<uuid4>``."""

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4()}"


class SequentialIdGenerator:
    """Deterministic ids (``<prefix>-1``, ``<prefix>-2``, ...) for tests and fixtures."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._counter)}"


class SystemClock:
    def now_ms(self) -> int:
        return int(time.time() * 1000)


class FixedClock:
    """Clock frozen at a given epoch-millisecond instant."""

    def __init__(self, now_ms: int) -> None:
        self._now_ms = now_ms

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, ms: int) -> None:
        self._now_ms += ms

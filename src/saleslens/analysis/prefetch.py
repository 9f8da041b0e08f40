"""Speculative background generation of coaching scripts.

While the rep reads an analysis, the coaching script for it can already
be generating. A prefetch is keyed by a client-chosen string: starting a
new one under the same key supersedes (cancels) the old one, an explicit
cancel drops it, and ``take`` hands over the finished result exactly once.
A cancelled or failed prefetch never surfaces its result or error; the
caller simply generates on demand instead.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

R = TypeVar("R")

MAX_PENDING_PREFETCHES = 50


def _log_failure(key: str, task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("prefetch.failed", key=key, error=str(exc))


class CoachingPrefetcher(Generic[R]):
    """Registry of in-flight prefetch tasks keyed by prefetch key."""

    def __init__(self, max_pending: int = MAX_PENDING_PREFETCHES) -> None:
        self._tasks: dict[str, asyncio.Task[R]] = {}
        self._max_pending = max_pending

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def start(self, key: str, factory: Callable[[], Awaitable[R]]) -> asyncio.Task[R]:
        """Launch ``factory()`` in the background under ``key``.

        Any in-flight task already registered under ``key`` is cancelled.
        When the registry is full the oldest entry is cancelled.
        """
        self.cancel(key)
        while len(self._tasks) >= self._max_pending:
            oldest = next(iter(self._tasks))
            self.cancel(oldest)

        async def _run() -> R:
            return await factory()

        task = asyncio.create_task(_run(), name=f"coaching_prefetch_{key}")
        task.add_done_callback(lambda t: _log_failure(key, t))
        self._tasks[key] = task
        logger.info("prefetch.started", key=key)
        return task

    def cancel(self, key: str) -> bool:
        """Cancel and forget the prefetch for ``key``. Returns whether one existed."""
        task = self._tasks.pop(key, None)
        if task is None:
            return False
        if not task.done():
            task.cancel()
            logger.info("prefetch.cancelled", key=key)
        return True

    async def take(self, key: str) -> R | None:
        """Wait for and return the prefetched result, removing it.

        Returns None when nothing is registered under ``key``, or the task
        was cancelled or raised.
        """
        task = self._tasks.pop(key, None)
        if task is None:
            return None
        try:
            result = await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            logger.info("prefetch.discarded_cancelled", key=key)
            return None
        except Exception:
            return None
        logger.info("prefetch.taken", key=key)
        return result

    async def aclose(self) -> None:
        """Cancel every pending prefetch and wait for them to unwind."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

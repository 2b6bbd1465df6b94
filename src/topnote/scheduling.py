"""Deferred callbacks for the editor's event loop.

The editor core is single-threaded: controllers and the autosave pipeline
never sleep, they ask a scheduler to call them back later. The default
scheduler is the running asyncio loop.
"""

from __future__ import annotations

import asyncio
import logging
from time import monotonic
from typing import Any, Callable, Coroutine, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Minimal timer/task interface used by the editor core."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds unless cancelled."""
        ...

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Future[Any]:
        """Start a coroutine without awaiting it."""
        ...

    def time(self) -> float:
        """Monotonic clock in seconds."""
        ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Future[Any]] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._get_loop().call_later(delay, callback)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Future[Any]:
        task = self._get_loop().create_task(coro)
        # Keep a reference until done so the task is not garbage collected.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def time(self) -> float:
        if self._loop is not None:
            return self._loop.time()
        return monotonic()

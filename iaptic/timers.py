"""One-shot timers on the asyncio event loop. There is no cancel primitive."""

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

log = logging.getLogger(__name__)

# Signed 32-bit millisecond limit; longer delays are never armed
MAX_TIMER_DELAY_MS = 2_147_483_647

TimerCallback = Callable[[], Awaitable[None]]


class Timer(Protocol):
    max_delay_ms: int

    def arm(self, delay_ms: int, callback: TimerCallback) -> None: ...


class LoopTimer:
    max_delay_ms = MAX_TIMER_DELAY_MS

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._tasks: set[asyncio.Task] = set()

    def arm(self, delay_ms: int, callback: TimerCallback) -> None:
        """Run ``callback()`` as a task after ``delay_ms``.

        Without an explicit loop this must be called from a running loop.
        """
        loop = self._loop or asyncio.get_running_loop()
        loop.call_later(delay_ms / 1000, self._fire, loop, callback)

    def _fire(self, loop: asyncio.AbstractEventLoop, callback: TimerCallback):
        task = loop.create_task(callback())
        self._tasks.add(task)
        task.add_done_callback(self._done)

    def _done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("Timer callback failed", exc_info=task.exception())

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

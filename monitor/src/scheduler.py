"""
Periodic timer scheduling behind a small injectable interface.

``AsyncioScheduler`` runs each timer as an ``asyncio.Task`` firing at a
fixed rate on the running event loop. ``ManualScheduler`` keeps a virtual
clock that only moves when ``advance()`` is awaited, so tests can replay
an hour of ticks instantly and deterministically.

Callbacks may be plain functions or coroutine functions. An exception
raised by a callback is logged and the timer keeps firing.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-107)

TODO:
- None
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None] | None]


class Timer:
    """Handle to a periodic timer.

    Attributes:
        name: Label used in log messages.
        interval_s: Seconds between two firings.
    """

    def __init__(self, name: str, interval_s: float, callback: TimerCallback) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0 (got: {interval_s})")
        self.name = name
        self.interval_s = interval_s
        self.callback = callback
        self.next_due: float = 0.0
        self._cancelled = False
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the timer. Cancelling twice is a no-op."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()

    async def fire(self) -> None:
        """Run the callback once, logging instead of raising on error."""
        try:
            result = self.callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Timer '%s' callback failed", self.name)


class Scheduler(Protocol):
    """Source of time and periodic callbacks."""

    def now(self) -> float: ...

    def call_every(
        self, interval_s: float, callback: TimerCallback, name: str = "timer"
    ) -> Timer: ...


class AsyncioScheduler:
    """Scheduler driven by the running asyncio event loop.

    Ticks are laid out on a fixed grid (``start + k * interval``) so
    slow callbacks do not make the timer drift. Ticks missed because
    the loop was blocked are skipped, not replayed.
    """

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    def call_every(
        self, interval_s: float, callback: TimerCallback, name: str = "timer"
    ) -> Timer:
        timer = Timer(name, interval_s, callback)
        timer.next_due = self.now() + interval_s
        timer._task = asyncio.get_running_loop().create_task(
            self._run(timer), name=name
        )
        return timer

    async def _run(self, timer: Timer) -> None:
        loop = asyncio.get_running_loop()
        while not timer.cancelled:
            await asyncio.sleep(max(0.0, timer.next_due - loop.time()))
            await timer.fire()
            timer.next_due += timer.interval_s
            now = loop.time()
            if timer.next_due <= now:
                skipped = int((now - timer.next_due) // timer.interval_s) + 1
                logger.warning(
                    "Timer '%s' fell behind, skipping %d tick(s)",
                    timer.name,
                    skipped,
                )
                timer.next_due += skipped * timer.interval_s


class ManualScheduler:
    """Virtual-time scheduler for deterministic tests and replays.

    Args:
        start: Initial value of the virtual clock, in seconds.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._timers: list[Timer] = []

    def now(self) -> float:
        return self._now

    def call_every(
        self, interval_s: float, callback: TimerCallback, name: str = "timer"
    ) -> Timer:
        timer = Timer(name, interval_s, callback)
        timer.next_due = self._now + interval_s
        self._timers.append(timer)
        return timer

    @property
    def active_timers(self) -> list[Timer]:
        return [t for t in self._timers if not t.cancelled]

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that falls due.

        Timers fire in chronological order; timers due at the same
        instant fire in the order they were created. Each callback is
        awaited, then the loop gets one turn so background tasks the
        callback spawned can make progress.
        """
        target = self._now + seconds
        while True:
            due = [t for t in self.active_timers if t.next_due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.next_due)
            self._now = timer.next_due
            timer.next_due += timer.interval_s
            await timer.fire()
            await asyncio.sleep(0)
        self._now = target
        self._timers = self.active_timers

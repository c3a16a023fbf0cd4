"""Session timers: elapsed-time accumulator and per-question countdown.

Both clocks are cooperative: they never own a thread. They ask a tick source
for a repeating callback and do their work inside it, on whatever loop the
tick source runs on. One tick counts as one second.
"""

import asyncio
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

from src.shared.constants import DEFAULT_TICK_SECONDS, TIMER_CRITICAL_RATIO, TIMER_WARNING_RATIO
from src.shared.models import TimerUrgency

logger = logging.getLogger(__name__)


class ITickHandle(Protocol):
    """Handle of a repeating tick; cancel() is idempotent."""

    def cancel(self) -> None:
        ...


class ITickSource(Protocol):
    """The scheduler capability the timers are driven by."""

    def schedule_repeating(self, interval_seconds: float, callback: Callable[[], None]) -> ITickHandle:
        """Invoke callback every interval_seconds until the handle is cancelled."""
        ...


# ===================
# Tick sources
# ===================


@dataclass(order=True)
class _ManualEntry:
    due: float
    seq: int
    interval: float = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualTickSource:
    """Deterministic tick source driven by explicit ``advance()`` calls.

    Ticks that fall due inside one advance are fired in time order; ticks
    scheduled from inside a callback start counting from the moment that
    callback ran.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[_ManualEntry] = []
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    @property
    def active_count(self) -> int:
        return sum(1 for entry in self._queue if not entry.cancelled)

    def schedule_repeating(self, interval_seconds: float, callback: Callable[[], None]) -> ITickHandle:
        entry = _ManualEntry(
            due=self._now + interval_seconds,
            seq=next(self._seq),
            interval=interval_seconds,
            callback=callback,
        )
        heapq.heappush(self._queue, entry)
        return entry

    def advance(self, seconds: float) -> int:
        """Move time forward, firing every tick that falls due.

        Returns:
            Number of callbacks fired
        """
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0].due <= target:
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            self._now = entry.due
            entry.due += entry.interval
            heapq.heappush(self._queue, entry)
            entry.callback()
            fired += 1
        self._now = target
        self._queue = [entry for entry in self._queue if not entry.cancelled]
        heapq.heapify(self._queue)
        return fired


class _AsyncioTick:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._handle: asyncio.TimerHandle | None = loop.call_later(interval, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Re-arm first so a cancel() from inside the callback sees the new handle
        self._handle = self._loop.call_later(self._interval, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioTickSource:
    """Tick source on the running asyncio loop (``loop.call_later`` chain)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule_repeating(self, interval_seconds: float, callback: Callable[[], None]) -> ITickHandle:
        loop = self._loop or asyncio.get_running_loop()
        return _AsyncioTick(loop, interval_seconds, callback)


# ===================
# Clocks
# ===================


def format_clock(seconds: int) -> str:
    """Format seconds as ``M:SS``."""
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_duration(seconds: int) -> str:
    """Format seconds as ``Xmin Ys``."""
    return f"{seconds // 60}min {seconds % 60}s"


def timer_urgency(remaining: int, limit: int) -> TimerUrgency:
    """Classify a countdown by the share of its limit that is left."""
    if limit <= 0:
        return TimerUrgency.CALM
    ratio = remaining / limit
    if ratio < TIMER_CRITICAL_RATIO:
        return TimerUrgency.CRITICAL
    if ratio < TIMER_WARNING_RATIO:
        return TimerUrgency.WARNING
    return TimerUrgency.CALM


class ElapsedClock:
    """Whole-session elapsed time in integer seconds.

    Runs while the learner is answering questions; stopped in review.
    """

    def __init__(self, tick_source: ITickSource, interval_seconds: float = DEFAULT_TICK_SECONDS) -> None:
        self._tick_source = tick_source
        self._interval = interval_seconds
        self._handle: ITickHandle | None = None
        self._seconds = 0

    @property
    def seconds(self) -> int:
        return self._seconds

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is None:
            self._handle = self._tick_source.schedule_repeating(self._interval, self._tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _tick(self) -> None:
        if self._handle is None:
            return
        self._seconds += 1

    def format(self) -> str:
        return format_clock(self._seconds)

    def format_long(self) -> str:
        return format_duration(self._seconds)


class QuestionCountdown:
    """Countdown for one visit to one timed question.

    Calls ``on_expire(token)`` exactly once when it reaches zero, then tears
    itself down. Ticks arriving after cancel or expiry do nothing.
    """

    def __init__(
        self,
        tick_source: ITickSource,
        limit_seconds: int,
        token: int,
        on_expire: Callable[[int], None],
        interval_seconds: float = DEFAULT_TICK_SECONDS,
    ) -> None:
        self._tick_source = tick_source
        self._limit = limit_seconds
        self._remaining = limit_seconds
        self._token = token
        self._on_expire = on_expire
        self._interval = interval_seconds
        self._handle: ITickHandle | None = None
        self._expired = False

    @property
    def token(self) -> int:
        return self._token

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def urgency(self) -> TimerUrgency:
        return timer_urgency(self._remaining, self._limit)

    def start(self) -> None:
        if self._handle is None and not self._expired:
            self._handle = self._tick_source.schedule_repeating(self._interval, self._tick)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _tick(self) -> None:
        if self._handle is None:
            return
        self._remaining -= 1
        if self._remaining <= 0:
            self._remaining = 0
            self._expired = True
            self.cancel()
            logger.debug(f"Countdown {self._token} expired after {self._limit}s")
            self._on_expire(self._token)

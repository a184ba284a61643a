from __future__ import annotations

import threading
import time
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from typing import Callable, Protocol


TickCallback = Callable[[float], None]


class TickHandle(Protocol):
    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    """Source of display-refresh style ticks.

    `request_tick` schedules exactly one call of `callback(now_ms)`; cancelling the
    returned handle guarantees the callback will not run.
    """

    def now(self) -> float: ...

    def request_tick(self, callback: TickCallback) -> TickHandle: ...


@dataclass
class _PendingTick:
    callback: TickCallback
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class VirtualClock:
    """Deterministic scheduler for tests and offline rendering.

    Time only moves through `advance()`; each call delivers one tick to every
    callback that was pending when it started.
    """

    time_ms: float = 0.0
    _pending: list[_PendingTick] = field(default_factory=list, repr=False)

    def now(self) -> float:
        return float(self.time_ms)

    def request_tick(self, callback: TickCallback) -> _PendingTick:
        tick = _PendingTick(callback)
        self._pending.append(tick)
        return tick

    @property
    def pending(self) -> int:
        return sum(1 for t in self._pending if not t.cancelled)

    def advance(self, ms: float) -> int:
        """Move time forward by `ms` and fire one tick. Returns how many callbacks ran."""
        if ms < 0:
            raise ValueError("cannot advance a clock backwards")
        self.time_ms = float(self.time_ms) + float(ms)
        due, self._pending = self._pending, []
        fired = 0
        for tick in due:
            # A callback earlier in this batch may cancel a later one.
            if tick.cancelled:
                continue
            tick.callback(self.time_ms)
            fired += 1
        return fired

    def run_frames(self, count: int, *, frame_ms: float = 1000.0 / 60.0) -> int:
        fired = 0
        for _ in range(int(count)):
            fired += self.advance(frame_ms)
        return fired


class _TimerTick:
    def __init__(self, timer: threading.Timer, state: _PendingTick) -> None:
        self._timer = timer
        self._state = state

    def cancel(self) -> None:
        self._state.cancel()
        self._timer.cancel()


class RealtimeScheduler:
    """Wall-clock ticks at a fixed rate, delivered on a timer thread.

    When `lock` is given each callback runs while holding it, so callers that guard
    the engine with the same lock keep it effectively single-threaded.
    """

    def __init__(self, fps: float = 60.0, *, lock: AbstractContextManager | None = None) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self._interval_s = 1.0 / float(fps)
        self._lock = lock

    def now(self) -> float:
        return time.perf_counter() * 1000.0

    def request_tick(self, callback: TickCallback) -> _TimerTick:
        state = _PendingTick(callback)

        def _fire() -> None:
            with self._lock if self._lock is not None else nullcontext():
                if state.cancelled:
                    return
                state.callback(self.now())

        timer = threading.Timer(self._interval_s, _fire)
        timer.daemon = True
        timer.start()
        return _TimerTick(timer, state)

"""cancellable timers for debounced history commits.

the history manager never sleeps itself; it asks a scheduler to call it
back later. three schedulers share one protocol:

- ThreadingScheduler: threading.Timer, for plain synchronous embedding
- AsyncioScheduler: loop.call_later, for use inside the api server
- ManualScheduler: virtual clock advanced by hand, for tests
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
from typing import Callable, ContextManager, Optional, Protocol, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


@runtime_checkable
class SchedulerProtocol(Protocol):
    """protocol for schedulers (real or manual)."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """run ``callback`` once after ``delay`` seconds unless cancelled."""
        ...


class ThreadingScheduler:
    """schedules callbacks on daemon timer threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class AsyncioScheduler:
    """schedules callbacks on an asyncio event loop.

    the loop defaults to the one running when ``call_later`` is first used,
    so the editor can be built outside the loop and used inside it.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class _ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """scheduler driven by a virtual clock, for deterministic tests."""

    def __init__(self):
        self.now = 0.0
        self._handles: list[_ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        """number of scheduled, not yet fired or cancelled callbacks."""
        return sum(1 for h in self._handles if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """move the clock forward, firing due callbacks in order. returns count fired."""
        self.now += seconds
        fired = 0
        while True:
            due = [h for h in self._handles if not h.cancelled and h.due <= self.now]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self._handles.remove(handle)
            handle.callback()
            fired += 1
        self._handles = [h for h in self._handles if not h.cancelled]
        return fired


class DebounceTimer:
    """holds at most one outstanding callback; rescheduling replaces it.

    pass the owner's ``lock`` when callbacks may arrive on another thread:
    the staleness check and the callback then run under it, so a timer that
    lost a race with ``schedule``/``cancel`` does nothing.
    """

    def __init__(
        self,
        delay: float,
        scheduler: Optional[SchedulerProtocol] = None,
        lock: Optional[ContextManager] = None,
    ):
        self.delay = delay
        self.scheduler = scheduler or ThreadingScheduler()
        self._lock = lock if lock is not None else contextlib.nullcontext()
        self._handle: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def active(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        """cancel any pending callback and schedule ``callback`` after the delay."""
        self.cancel()
        self._generation += 1
        generation = self._generation

        def fire() -> None:
            with self._lock:
                # a cancelled threading.Timer can still be mid-flight
                if generation != self._generation:
                    return
                self._handle = None
                callback()

        self._handle = self.scheduler.call_later(self.delay, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._generation += 1

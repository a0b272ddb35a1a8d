"""Schedulers that drive the simulated hub latency.

All deferred work in the simulator goes through a scheduler's
``call_later``. ``ManualScheduler`` keeps a virtual clock that callers advance
explicitly; ``ThreadScheduler`` runs callbacks in real time on a single worker
thread, so every callback is serialized like a browser event loop.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled callback that can be cancelled before it runs."""

    __slots__ = ("when", "_callback", "_args", "_cancelled")

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self._callback: Callable[..., Any] | None = callback
        self._args = args
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self._callback = None
        self._args = ()

    def _run(self) -> None:
        callback = self._callback
        if self._cancelled or callback is None:
            return
        args = self._args
        self._callback = None
        self._args = ()
        callback(*args)


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle: ...

    def close(self) -> None: ...


class ManualScheduler:
    """Virtual-time scheduler for tests and deterministic demos.

    Nothing runs until ``advance`` is called. Timers due at the same instant
    run in the order they were scheduled.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle:
        handle = TimerHandle(self._now + max(0.0, float(delay)), callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every timer that falls due.

        Timers scheduled by callbacks run too if they are due before the
        target time.

        Args:
            seconds: Amount of virtual time to elapse

        Returns:
            Number of callbacks run
        """
        if seconds < 0:
            raise ValueError("cannot advance by a negative amount")

        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            self._now = when
            if handle.cancelled:
                continue
            handle._run()
            ran += 1
        self._now = target
        return ran

    def run_until_idle(self, max_steps: int = 1000) -> int:
        """Run queued timers in order until none remain.

        Periodic timers reschedule themselves forever, so the loop is bounded
        by ``max_steps``.

        Returns:
            Number of callbacks run
        """
        ran = 0
        while ran < max_steps:
            self._drop_cancelled()
            if not self._queue:
                break
            when, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, when)
            handle._run()
            ran += 1
        return ran

    def pending(self) -> int:
        """Get number of timers that have not run or been cancelled."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def next_deadline(self) -> float | None:
        self._drop_cancelled()
        return self._queue[0][0] if self._queue else None

    def close(self) -> None:
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()

    def _drop_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)


class ThreadScheduler:
    """Real-time scheduler running callbacks on one background thread."""

    def __init__(self, name: str = "hub-sim-scheduler") -> None:
        self._cond = threading.Condition()
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def now(self) -> float:
        return time.monotonic()

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle:
        handle = TimerHandle(self.now() + max(0.0, float(delay)), callback, args)
        with self._cond:
            if self._closed:
                raise RuntimeError("scheduler is closed")
            heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
            self._cond.notify()
        return handle

    def is_scheduler_thread(self) -> bool:
        return threading.current_thread() is self._thread

    def close(self, timeout: float = 2.0) -> None:
        """Stop the worker thread and drop pending timers."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            for _, _, handle in self._queue:
                handle.cancel()
            self._queue.clear()
            self._cond.notify_all()

        if not self.is_scheduler_thread():
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while True:
            with self._cond:
                handle = None
                while not self._closed:
                    if not self._queue:
                        self._cond.wait()
                        continue
                    when, _, candidate = self._queue[0]
                    if candidate.cancelled:
                        heapq.heappop(self._queue)
                        continue
                    remaining = when - self.now()
                    if remaining > 0:
                        self._cond.wait(timeout=remaining)
                        continue
                    heapq.heappop(self._queue)
                    handle = candidate
                    break
                if handle is None:
                    return

            try:
                handle._run()
            except Exception as e:
                logger.exception("Error in scheduled callback: %s", e)

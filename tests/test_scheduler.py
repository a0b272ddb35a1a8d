import threading

import pytest

from hub_simulator import ManualScheduler, ThreadScheduler


def test_manual_scheduler_runs_due_timers_in_order():
    scheduler = ManualScheduler()
    calls = []
    scheduler.call_later(0.5, calls.append, "b")
    scheduler.call_later(0.2, calls.append, "a")
    scheduler.call_later(0.5, calls.append, "c")
    scheduler.call_later(2.0, calls.append, "late")

    assert scheduler.advance(1.0) == 3
    assert calls == ["a", "b", "c"]
    assert scheduler.now() == 1.0
    assert scheduler.pending() == 1


def test_manual_scheduler_skips_cancelled():
    scheduler = ManualScheduler()
    calls = []
    handle = scheduler.call_later(0.1, calls.append, "x")
    handle.cancel()

    assert handle.cancelled
    assert scheduler.advance(1.0) == 0
    assert calls == []


def test_manual_scheduler_runs_timers_scheduled_by_callbacks():
    scheduler = ManualScheduler()
    calls = []

    def first():
        calls.append(("first", scheduler.now()))
        scheduler.call_later(0.25, lambda: calls.append(("second", scheduler.now())))

    scheduler.call_later(0.25, first)
    scheduler.advance(1.0)

    assert calls == [("first", 0.25), ("second", 0.5)]


def test_manual_scheduler_rejects_negative_advance():
    with pytest.raises(ValueError):
        ManualScheduler().advance(-1)


def test_run_until_idle_is_bounded():
    scheduler = ManualScheduler()

    def tick():
        scheduler.call_later(1.0, tick)

    scheduler.call_later(1.0, tick)
    assert scheduler.run_until_idle(max_steps=5) == 5
    assert scheduler.now() == 5.0


def test_thread_scheduler_runs_callbacks_on_worker_thread():
    scheduler = ThreadScheduler()
    done = threading.Event()
    seen = []

    def callback(value):
        seen.append((value, scheduler.is_scheduler_thread()))
        done.set()

    try:
        scheduler.call_later(0.01, callback, "x")
        assert done.wait(timeout=2.0)
    finally:
        scheduler.close()

    assert seen == [("x", True)]


def test_thread_scheduler_close_drops_pending():
    scheduler = ThreadScheduler()
    calls = []
    scheduler.call_later(5.0, calls.append, "never")
    scheduler.close()

    assert calls == []
    with pytest.raises(RuntimeError):
        scheduler.call_later(0.0, calls.append, "closed")

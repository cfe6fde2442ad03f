# tests/test_dispatcher.py

from __future__ import annotations

import threading
import time

import pytest

from workbench_agent.agent.dispatcher import TurnDispatcher


def test_turns_of_one_conversation_run_in_order() -> None:
    d = TurnDispatcher()
    seen: list[int] = []
    active = 0
    overlap = False
    guard = threading.Lock()

    def job(n: int):
        def _run() -> None:
            nonlocal active, overlap
            with guard:
                active += 1
                overlap = overlap or active > 1
            time.sleep(0.01)
            seen.append(n)
            with guard:
                active -= 1

        return _run

    for n in range(5):
        d.submit(1, job(n))

    assert d.wait_idle(timeout=5)
    assert seen == [0, 1, 2, 3, 4]
    assert not overlap


def test_conversations_run_in_parallel() -> None:
    d = TurnDispatcher()
    started = threading.Barrier(2, timeout=5)

    # deadlocks (and the barrier times out) unless both jobs run at once
    d.submit(1, started.wait)
    d.submit(2, started.wait)

    assert d.wait_idle(timeout=5)
    assert not started.broken


def test_submit_returns_before_the_turn_finishes() -> None:
    d = TurnDispatcher()
    started = threading.Event()
    release = threading.Event()

    def first() -> None:
        started.set()
        release.wait(5)

    d.submit(7, first)
    assert d.is_busy(7)
    assert started.wait(5)

    d.submit(7, lambda: None)
    assert d.pending(7) == 1

    release.set()
    assert d.wait_idle(timeout=5)
    assert not d.is_busy(7)
    assert d.pending(7) == 0


def test_crashing_job_does_not_stop_the_queue() -> None:
    d = TurnDispatcher()
    ran: list[str] = []

    def boom() -> None:
        raise RuntimeError("boom")

    d.submit(1, boom)
    d.submit(1, lambda: ran.append("after"))

    assert d.wait_idle(timeout=5)
    assert ran == ["after"]


def test_wait_idle_times_out() -> None:
    d = TurnDispatcher()
    release = threading.Event()
    d.submit(1, lambda: release.wait(5))

    assert d.wait_idle(timeout=0.05) is False

    release.set()
    assert d.wait_idle(timeout=5)


def test_submit_after_shutdown_is_rejected() -> None:
    d = TurnDispatcher()
    d.shutdown()
    with pytest.raises(RuntimeError):
        d.submit(1, lambda: None)

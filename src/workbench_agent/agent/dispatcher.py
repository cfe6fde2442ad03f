# src/workbench_agent/agent/dispatcher.py

"""
Fire-and-forget turn dispatch.

submit() returns immediately. Each conversation gets at most one worker thread
that drains that conversation's queue in submission order, so two turns of the
same conversation never overlap. Different conversations run in parallel.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable

logger = logging.getLogger(__name__)

Job = Callable[[], object]


class TurnDispatcher:
    def __init__(self, *, name: str = "turn") -> None:
        self._name = name
        self._lock = threading.Lock()
        self._queues: dict[int, deque[Job]] = {}
        self._workers: dict[int, threading.Thread] = {}
        self._closed = False

    def submit(self, conversation_id: int, job: Job) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("TurnDispatcher is shut down")
            self._queues.setdefault(conversation_id, deque()).append(job)
            if conversation_id in self._workers:
                logger.debug("conversation=%s busy, turn queued", conversation_id)
                return
            worker = threading.Thread(
                target=self._drain,
                args=(conversation_id,),
                name=f"{self._name}-{conversation_id}",
                daemon=True,
            )
            self._workers[conversation_id] = worker
            worker.start()

    def is_busy(self, conversation_id: int) -> bool:
        with self._lock:
            return conversation_id in self._workers

    def pending(self, conversation_id: int) -> int:
        """Queued turns not yet started."""
        with self._lock:
            return len(self._queues.get(conversation_id, ()))

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no conversation has work. Returns False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                workers = list(self._workers.values())
            if not workers:
                return True
            for w in workers:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                w.join(remaining)
                if deadline is not None and time.monotonic() >= deadline:
                    with self._lock:
                        return not self._workers

    def shutdown(self, *, wait: bool = True, timeout: float | None = None) -> None:
        """Refuse new turns; optionally wait for running ones."""
        with self._lock:
            self._closed = True
        if wait:
            self.wait_idle(timeout)

    def _drain(self, conversation_id: int) -> None:
        while True:
            with self._lock:
                queue = self._queues.get(conversation_id)
                if not queue:
                    self._queues.pop(conversation_id, None)
                    self._workers.pop(conversation_id, None)
                    return
                job = queue.popleft()

            try:
                job()
            except Exception:
                logger.exception("Turn job crashed conversation=%s", conversation_id)

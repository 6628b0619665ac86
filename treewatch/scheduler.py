"""
treewatch Scheduler - Deferred Tasks and Change Delivery
========================================================

The engine defers exactly two kinds of work: delayed (batched) flushes and
grace-window reclamation. Both go through a task queue with a single
``call_later(delay, fn)`` method:

- ``TaskQueue``: an explicit queue drained by the host. ``run_due()`` runs
  what is due on its clock, ``advance(seconds)`` moves a manual offset
  forward first (handy in tests and in hosts with their own tick).
- ``AsyncioTaskQueue``: hands tasks to an asyncio event loop.

Neither task needs cancellation: a stale flush finds a drained queue and a
stale reclamation finds the container reachable again.

``NotificationScheduler`` owns the delivery policy for every context:
synchronous after each mutating call, or coalesced behind one scheduled
flush when the context has a delay.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Any, Callable, List, Optional, Tuple

from .changes import ChangeRecord


class TaskQueue:
    """
    Single-consumer deferred task queue.

    Tasks run in due order (ties in scheduling order) only when the host
    calls ``run_due()``, ``advance()`` or ``run_all()``.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._offset = 0.0
        self._heap: List[Tuple[float, int, Callable[[], Any]]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._clock() + self._offset

    def call_later(self, delay: float, fn: Callable[[], Any]) -> None:
        heapq.heappush(self._heap, (self.now() + max(delay, 0.0), next(self._seq), fn))

    def run_due(self) -> int:
        """Run every task whose due time has passed. Returns how many ran."""
        ran = 0
        while self._heap and self._heap[0][0] <= self.now():
            _, _, fn = heapq.heappop(self._heap)
            self._run(fn)
            ran += 1
        return ran

    def advance(self, seconds: float) -> int:
        """Move the queue's clock forward and run what became due."""
        self._offset += seconds
        return self.run_due()

    def run_all(self) -> int:
        """Run everything, including tasks scheduled while draining."""
        ran = 0
        while self._heap:
            due, _, fn = heapq.heappop(self._heap)
            if due > self.now():
                self._offset += due - self.now()
            self._run(fn)
            ran += 1
        return ran

    def _run(self, fn: Callable[[], Any]) -> None:
        try:
            fn()
        except Exception as e:
            logging.error(f"Error in deferred task {fn!r}: {e}")

    def __len__(self) -> int:
        return len(self._heap)


class AsyncioTaskQueue:
    """Task queue backed by an asyncio event loop (the running one by default)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, fn: Callable[[], Any]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(delay, 0.0), fn)


class NotificationScheduler:
    """
    Delivers queued ChangeRecords to a context's observers.

    Records produced while the context is paused are tagged and dropped by
    the next flush attempt, so resuming never replays them.
    """

    def __init__(self, task_queue: Any):
        self.tasks = task_queue

    def enqueue(self, context: Any, record: ChangeRecord) -> None:
        context.pending.append((record, context.paused))

    def notify(self, context: Any) -> None:
        """Called once at the end of every mutating call on the context."""
        if context.paused or not context.active:
            return

        if context.delay > 0:
            if not context.flush_scheduled:
                context.flush_scheduled = True
                self.tasks.call_later(context.delay, lambda: self._scheduled_flush(context))
        else:
            self.flush(context)

    def _scheduled_flush(self, context: Any) -> None:
        # Runs even if the context was paused after scheduling: records queued
        # before the pause are delivered, records tagged as paused are dropped.
        context.flush_scheduled = False
        if not context.active:
            return
        self.flush(context)

    def flush(self, context: Any) -> List[ChangeRecord]:
        """
        Deliver pending records now.

        The queue is copied and cleared before any observer runs, so an
        observer that raises (or mutates the tree again) cannot lose or
        duplicate records.
        """
        batch = [record for record, while_paused in context.pending if not while_paused]
        context.pending = []
        if not batch:
            return batch

        for observer in list(context.observers):
            try:
                observer(list(batch))
            except Exception as e:
                logging.error(f"Error in observer {observer!r}: {e}")
        return batch

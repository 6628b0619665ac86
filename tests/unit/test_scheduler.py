"""Unit tests for the task queues and the notification scheduler."""

import asyncio
from unittest.mock import Mock

import pytest

from treewatch import AsyncioTaskQueue, ChangeKind, NotificationScheduler, TaskQueue
from treewatch.changes import make_record
from treewatch.context import ObservationContext


def record(key="a", value=1):
    return make_record(ChangeKind.ADD, {}, key, None, value, None, key, f"/{key}")


@pytest.fixture
def queue():
    return TaskQueue(clock=lambda: 0.0)


# TaskQueue


@pytest.mark.unit
@pytest.mark.scheduler
def test_task_queue_runs_nothing_before_due(queue):
    task = Mock()
    queue.call_later(1.0, task)

    assert queue.run_due() == 0
    task.assert_not_called()
    assert len(queue) == 1


@pytest.mark.unit
@pytest.mark.scheduler
def test_task_queue_advance_runs_due_tasks_in_due_order(queue):
    order = []
    queue.call_later(2.0, lambda: order.append("late"))
    queue.call_later(1.0, lambda: order.append("early"))
    queue.call_later(1.0, lambda: order.append("early-second"))
    queue.call_later(5.0, lambda: order.append("never"))

    ran = queue.advance(2.0)

    assert ran == 3
    assert order == ["early", "early-second", "late"]
    assert len(queue) == 1


@pytest.mark.unit
@pytest.mark.scheduler
def test_task_queue_run_all_includes_tasks_scheduled_while_draining(queue):
    calls = []

    def first():
        calls.append("first")
        queue.call_later(10.0, lambda: calls.append("second"))

    queue.call_later(1.0, first)

    assert queue.run_all() == 2
    assert calls == ["first", "second"]
    assert queue.now() == pytest.approx(11.0)


@pytest.mark.unit
@pytest.mark.scheduler
@pytest.mark.edge_case
def test_task_queue_keeps_running_after_a_failing_task(queue):
    after = Mock()
    queue.call_later(0.0, Mock(side_effect=RuntimeError("boom")))
    queue.call_later(0.0, after)

    queue.run_due()

    after.assert_called_once()


@pytest.mark.unit
@pytest.mark.scheduler
@pytest.mark.asyncio
async def test_asyncio_task_queue_runs_on_the_running_loop():
    queue = AsyncioTaskQueue()
    done = asyncio.Event()

    queue.call_later(0.01, done.set)

    await asyncio.wait_for(done.wait(), timeout=1.0)
    assert done.is_set()


# NotificationScheduler


@pytest.mark.unit
@pytest.mark.scheduler
def test_synchronous_context_flushes_immediately(queue):
    scheduler = NotificationScheduler(queue)
    observer = Mock()
    context = ObservationContext(root={}, observers=[observer])
    rec = record()

    scheduler.enqueue(context, rec)
    scheduler.notify(context)

    observer.assert_called_once_with([rec])
    assert context.pending == []


@pytest.mark.unit
@pytest.mark.scheduler
def test_delayed_context_schedules_a_single_flush(queue):
    scheduler = NotificationScheduler(queue)
    observer = Mock()
    context = ObservationContext(root={}, delay=0.5, observers=[observer])

    for key in ("a", "b", "c"):
        scheduler.enqueue(context, record(key))
        scheduler.notify(context)

    observer.assert_not_called()
    assert len(queue) == 1

    queue.advance(0.5)

    observer.assert_called_once()
    assert [r.property for r in observer.call_args.args[0]] == ["a", "b", "c"]
    assert context.flush_scheduled is False


@pytest.mark.unit
@pytest.mark.scheduler
def test_records_enqueued_while_paused_are_dropped(queue):
    """Resuming never replays what happened during the pause"""
    scheduler = NotificationScheduler(queue)
    observer = Mock()
    context = ObservationContext(root={}, observers=[observer])

    context.paused = True
    scheduler.enqueue(context, record("during"))
    scheduler.notify(context)
    observer.assert_not_called()

    context.paused = False
    after = record("after")
    scheduler.enqueue(context, after)
    scheduler.notify(context)

    observer.assert_called_once_with([after])


@pytest.mark.unit
@pytest.mark.scheduler
@pytest.mark.edge_case
def test_failing_observer_does_not_block_others(queue):
    scheduler = NotificationScheduler(queue)
    bad = Mock(side_effect=ValueError("observer failure"))
    good = Mock()
    context = ObservationContext(root={}, observers=[bad, good])

    scheduler.enqueue(context, record())
    delivered = scheduler.flush(context)

    assert len(delivered) == 1
    bad.assert_called_once()
    good.assert_called_once()
    assert context.pending == []


@pytest.mark.unit
@pytest.mark.scheduler
def test_each_observer_gets_its_own_list(queue):
    scheduler = NotificationScheduler(queue)

    def greedy(changes):
        changes.clear()

    second = Mock()
    context = ObservationContext(root={}, observers=[greedy, second])
    scheduler.enqueue(context, record())

    scheduler.flush(context)

    assert len(second.call_args.args[0]) == 1


@pytest.mark.unit
@pytest.mark.scheduler
@pytest.mark.edge_case
def test_scheduled_flush_skips_removed_context(queue):
    scheduler = NotificationScheduler(queue)
    observer = Mock()
    context = ObservationContext(root={}, delay=0.1, observers=[observer])
    scheduler.enqueue(context, record())
    scheduler.notify(context)

    context.active = False
    queue.advance(1.0)

    observer.assert_not_called()


@pytest.mark.unit
@pytest.mark.scheduler
@pytest.mark.edge_case
def test_flush_scheduled_before_pause_delivers_earlier_records(queue):
    """Records queued before the pause do not wait for the next mutation"""
    scheduler = NotificationScheduler(queue)
    observer = Mock()
    context = ObservationContext(root={}, delay=0.05, observers=[observer])
    before = record("before")
    scheduler.enqueue(context, before)
    scheduler.notify(context)

    context.paused = True
    scheduler.enqueue(context, record("during"))
    scheduler.notify(context)
    queue.advance(1.0)

    observer.assert_called_once_with([before])
    assert context.pending == []

    context.paused = False
    queue.advance(1.0)
    observer.assert_called_once()

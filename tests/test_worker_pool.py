"""Tests for the bounded worker pool, using fake reconcilers."""

import asyncio

import pytest

from galactic_archive.features.indexing.entries import DirectoryEntry, FileEntry
from galactic_archive.features.indexing.errors import PipelineCancelledError, ReconciliationError
from galactic_archive.features.indexing.reconciler import ReconcileOutcome
from galactic_archive.features.indexing.worker_pool import ConsumeResult, consume


def file_entry(i: int) -> FileEntry:
    return FileEntry(path=f"/root/f{i}.txt", name=f"f{i}.txt", parent_path="/root", size=i)


def closed_queue(entries) -> asyncio.Queue:
    queue: asyncio.Queue = asyncio.Queue()
    for entry in entries:
        queue.put_nowait(entry)
    queue.shutdown()
    return queue


@pytest.mark.unit
def test_consume_result_counts():
    result = ConsumeResult()
    result.record(ReconcileOutcome.INSERTED)
    result.record(ReconcileOutcome.UPDATED)
    result.record(ReconcileOutcome.UNCHANGED)
    result.record(ReconcileOutcome.UNCHANGED)
    result.failures.append(ReconciliationError("/x", "boom"))

    assert (result.inserted, result.updated, result.unchanged) == (1, 1, 2)
    assert result.processed == 5


@pytest.mark.unit
@pytest.mark.asyncio
async def test_consume_empty_closed_queue():
    calls = []

    async def reconcile(entry):
        calls.append(entry)
        return ReconcileOutcome.INSERTED

    result = await consume(closed_queue([]), reconcile, asyncio.Event())

    assert result.processed == 0
    assert calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_consume_reconciles_every_entry_once():
    entries = [file_entry(i) for i in range(10)] + [
        DirectoryEntry(path="/root/d", name="d", parent_path="/root")
    ]
    seen = []

    async def reconcile(entry):
        seen.append(entry.path)
        return ReconcileOutcome.INSERTED

    result = await consume(closed_queue(entries), reconcile, asyncio.Event())

    assert sorted(seen) == sorted(e.path for e in entries)
    assert result.inserted == 11
    assert result.failures == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_consume_bounds_concurrency():
    active = 0
    peak = 0

    async def reconcile(entry):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        return ReconcileOutcome.UNCHANGED

    result = await consume(
        closed_queue([file_entry(i) for i in range(20)]), reconcile, asyncio.Event(), 4
    )

    assert peak == 4
    assert result.unchanged == 20


@pytest.mark.unit
@pytest.mark.asyncio
async def test_consume_collects_failures_and_keeps_going():
    async def reconcile(entry):
        if entry.path.endswith("f3.txt"):
            raise ReconciliationError(entry.path, "store said no")
        if entry.path.endswith("f5.txt"):
            raise RuntimeError("driver exploded")
        return ReconcileOutcome.INSERTED

    result = await consume(
        closed_queue([file_entry(i) for i in range(8)]), reconcile, asyncio.Event()
    )

    assert result.inserted == 6
    assert sorted(f.path for f in result.failures) == ["/root/f3.txt", "/root/f5.txt"]
    unexpected = next(f for f in result.failures if f.path == "/root/f5.txt")
    assert isinstance(unexpected.cause, RuntimeError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_consume_releases_slots_after_failures():
    async def reconcile(entry):
        raise ReconciliationError(entry.path, "always fails")

    # More failing entries than slots: a leaked slot would hang the pool
    result = await asyncio.wait_for(
        consume(closed_queue([file_entry(i) for i in range(10)]), reconcile, asyncio.Event(), 2),
        timeout=5,
    )

    assert len(result.failures) == 10


@pytest.mark.unit
@pytest.mark.asyncio
async def test_consume_waits_for_open_queue():
    queue: asyncio.Queue = asyncio.Queue()

    async def reconcile(entry):
        return ReconcileOutcome.INSERTED

    task = asyncio.create_task(consume(queue, reconcile, asyncio.Event()))
    await asyncio.sleep(0.02)
    assert not task.done()

    await queue.put(file_entry(1))
    queue.shutdown()

    result = await task
    assert result.inserted == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_consume_cancelled_before_start():
    stop_event = asyncio.Event()
    stop_event.set()
    calls = []

    async def reconcile(entry):
        calls.append(entry)
        return ReconcileOutcome.INSERTED

    with pytest.raises(PipelineCancelledError):
        await consume(closed_queue([file_entry(1)]), reconcile, stop_event)
    assert calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_consume_lets_in_flight_work_finish_on_stop():
    stop_event = asyncio.Event()
    release = asyncio.Event()
    started = []
    finished = []

    async def reconcile(entry):
        started.append(entry.path)
        await release.wait()
        finished.append(entry.path)
        return ReconcileOutcome.INSERTED

    queue: asyncio.Queue = asyncio.Queue()
    for i in range(6):
        queue.put_nowait(file_entry(i))

    task = asyncio.create_task(consume(queue, reconcile, stop_event, 4))
    while len(started) < 4:
        await asyncio.sleep(0.01)

    stop_event.set()
    await asyncio.sleep(0.01)
    release.set()

    with pytest.raises(PipelineCancelledError):
        await task

    assert len(started) == 4
    assert sorted(finished) == sorted(started)

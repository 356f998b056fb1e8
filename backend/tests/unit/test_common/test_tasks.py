"""
Lazy Expiration Task Runner Unit Tests
"""

import asyncio
import logging

import pytest

from kvstore.common.tasks import LazyDeleter


@pytest.mark.asyncio
async def test_schedule_runs_in_background():
    """Scheduled deletes run without the caller awaiting them"""
    deleter = LazyDeleter(concurrency=2)
    done = []

    async def delete():
        done.append("k")

    deleter.schedule("k", delete)
    assert deleter.pending == 1

    await deleter.drain()

    assert done == ["k"]
    assert deleter.pending == 0


@pytest.mark.asyncio
async def test_failures_are_logged_and_swallowed(caplog):
    """A failing delete never reaches the caller"""
    deleter = LazyDeleter()

    async def delete():
        raise RuntimeError("connection lost")

    with caplog.at_level(logging.WARNING, logger="kvstore.common.tasks"):
        deleter.schedule(("store", "store", "k"), delete)
        await deleter.drain()

    assert "connection lost" in caplog.text
    assert deleter.pending == 0


@pytest.mark.asyncio
async def test_in_flight_deletes_are_coalesced():
    """Scheduling the same row twice while in flight runs one delete"""
    deleter = LazyDeleter()
    release = asyncio.Event()
    calls = []

    async def delete():
        calls.append(1)
        await release.wait()

    deleter.schedule("k", delete)
    deleter.schedule("k", delete)
    await asyncio.sleep(0)
    release.set()
    await deleter.drain()

    assert calls == [1]


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    """No more than `concurrency` deletes run at once"""
    deleter = LazyDeleter(concurrency=2)
    running = 0
    peak = 0

    async def delete():
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    for i in range(6):
        deleter.schedule(i, delete)
    await deleter.drain()

    assert peak == 2


def test_schedule_without_loop_is_skipped():
    """Outside an event loop nothing is scheduled and nothing is raised"""
    deleter = LazyDeleter()

    async def delete():
        pass

    deleter.schedule("k", delete)

    assert deleter.pending == 0

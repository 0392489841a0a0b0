import asyncio

import pytest

from battery_notify.poller import FilePoller, PollEvent
from conftest import replace_text

INTERVAL = 0.01


async def _next(poller, timeout=1.0):
    return await asyncio.wait_for(poller.__anext__(), timeout=timeout)


@pytest.fixture
def capacity(tmp_path):
    path = tmp_path / "capacity"
    replace_text(path, "50\n")
    return path


def test_rejects_non_positive_interval(capacity):
    with pytest.raises(ValueError, match="poll interval must be positive"):
        FilePoller(capacity, interval=0)


@pytest.mark.asyncio
async def test_no_event_without_change(capacity):
    poller = FilePoller(capacity, INTERVAL)
    with pytest.raises(asyncio.TimeoutError):
        await _next(poller, timeout=0.1)


@pytest.mark.asyncio
async def test_event_on_change(capacity):
    poller = FilePoller(capacity, INTERVAL)
    task = asyncio.create_task(_next(poller))
    await asyncio.sleep(0.03)

    replace_text(capacity, "49\n")
    event = await task
    assert event == PollEvent(capacity)
    assert event.ok


@pytest.mark.asyncio
async def test_rewrite_with_same_content_is_not_a_change(capacity):
    poller = FilePoller(capacity, INTERVAL)
    task = asyncio.create_task(_next(poller, timeout=0.2))
    await asyncio.sleep(0.03)

    replace_text(capacity, "50\n")
    with pytest.raises(asyncio.TimeoutError):
        await task


@pytest.mark.asyncio
async def test_one_event_per_change(capacity):
    poller = FilePoller(capacity, INTERVAL)
    task = asyncio.create_task(_next(poller))
    await asyncio.sleep(0.03)
    replace_text(capacity, "49\n")
    await task

    with pytest.raises(asyncio.TimeoutError):
        await _next(poller, timeout=0.1)


@pytest.mark.asyncio
async def test_missing_file_reports_error_once(tmp_path):
    path = tmp_path / "status"
    poller = FilePoller(path, INTERVAL)

    event = await _next(poller)
    assert not event.ok
    assert isinstance(event.error, FileNotFoundError)

    with pytest.raises(asyncio.TimeoutError):
        await _next(poller, timeout=0.1)


@pytest.mark.asyncio
async def test_recovery_after_error_is_an_event(tmp_path):
    path = tmp_path / "status"
    poller = FilePoller(path, INTERVAL)
    assert not (await _next(poller)).ok

    replace_text(path, "Charging\n")
    event = await _next(poller)
    assert event.ok


@pytest.mark.asyncio
async def test_vanished_file_then_same_content(capacity):
    poller = FilePoller(capacity, INTERVAL)
    task = asyncio.create_task(_next(poller))
    await asyncio.sleep(0.03)

    capacity.unlink()
    assert not (await task).ok

    replace_text(capacity, "50\n")
    with pytest.raises(asyncio.TimeoutError):
        await _next(poller, timeout=0.1)


@pytest.mark.asyncio
async def test_stop_ends_iteration(capacity):
    stop = asyncio.Event()
    poller = FilePoller(capacity, interval=10.0, stop=stop)
    events = []

    async def consume():
        async for event in poller:
            events.append(event)

    task = asyncio.create_task(consume())
    await asyncio.sleep(0.02)
    stop.set()
    await asyncio.wait_for(task, timeout=1.0)
    assert events == []


@pytest.mark.asyncio
async def test_stop_already_set(capacity):
    stop = asyncio.Event()
    stop.set()
    poller = FilePoller(capacity, INTERVAL, stop)
    with pytest.raises(StopAsyncIteration):
        await _next(poller)

from __future__ import annotations

import asyncio

import pytest

from app.core.errors import TransportWriteError
from app.services.stream_transport import QueueEventSink


@pytest.mark.asyncio
async def test_frames_are_delivered_in_order_until_close() -> None:
    sink = QueueEventSink(max_frames=8)

    await sink.send("event: a\n\n")
    await sink.send("event: b\n\n")
    await sink.close()

    assert [frame async for frame in sink.frames()] == ["event: a\n\n", "event: b\n\n"]


@pytest.mark.asyncio
async def test_send_after_close_fails() -> None:
    sink = QueueEventSink()
    await sink.close()
    await sink.close()

    assert sink.closed
    with pytest.raises(TransportWriteError):
        await sink.send("event: late\n\n")


@pytest.mark.asyncio
async def test_send_fails_once_reader_detached() -> None:
    sink = QueueEventSink()
    await sink.send("event: a\n\n")

    sink.detach_reader()

    with pytest.raises(TransportWriteError):
        await sink.send("event: b\n\n")


@pytest.mark.asyncio
async def test_slow_reader_turns_into_write_failure() -> None:
    sink = QueueEventSink(max_frames=1, write_timeout_seconds=0.01)
    await sink.send("event: a\n\n")

    with pytest.raises(TransportWriteError):
        await sink.send("event: b\n\n")


@pytest.mark.asyncio
async def test_close_on_full_queue_still_ends_the_reader() -> None:
    sink = QueueEventSink(max_frames=1, write_timeout_seconds=0.01)
    await sink.send("event: a\n\n")

    await asyncio.wait_for(sink.close(), timeout=1)
    frames = await asyncio.wait_for(_drain(sink), timeout=1)

    assert sink.closed
    assert frames == ["event: a\n\n"]


@pytest.mark.asyncio
async def test_close_wakes_a_waiting_reader() -> None:
    sink = QueueEventSink(max_frames=2)
    reader = asyncio.create_task(_drain(sink))
    await asyncio.sleep(0)

    await sink.send("event: a\n\n")
    await sink.close()

    assert await asyncio.wait_for(reader, timeout=1) == ["event: a\n\n"]


async def _drain(sink: QueueEventSink) -> list[str]:
    return [frame async for frame in sink.frames()]

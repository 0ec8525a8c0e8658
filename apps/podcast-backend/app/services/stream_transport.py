from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
import logging
from typing import Protocol

from app.core.errors import TransportWriteError

logger = logging.getLogger(__name__)

_SENTINEL = object()


class EventSink(Protocol):
    """Write side of the response channel, owned by the conversation driver."""

    async def send(self, frame: str) -> None:
        """Deliver one encoded frame or raise ``TransportWriteError``."""

    async def close(self) -> None:
        """Signal end of stream to the reader. Safe to call more than once."""


class QueueEventSink(EventSink):
    """Bounded in-process channel between the driver task and the HTTP response."""

    def __init__(self, max_frames: int = 64, write_timeout_seconds: float = 10.0) -> None:
        self._queue: asyncio.Queue[str | object] = asyncio.Queue(maxsize=max_frames)
        self._write_timeout_seconds = write_timeout_seconds
        self._closed = False
        self._reader_gone = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, frame: str) -> None:
        if self._closed or self._reader_gone:
            raise TransportWriteError("stream is closed")
        try:
            await asyncio.wait_for(self._queue.put(frame), timeout=self._write_timeout_seconds)
        except TimeoutError as exc:
            raise TransportWriteError("stream reader is not keeping up; write timed out") from exc

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._reader_gone:
            return
        try:
            self._queue.put_nowait(_SENTINEL)
        except asyncio.QueueFull:
            # frames() ends once the backlog is read.
            logger.warning("stream queue full at close", extra={"pending_frames": self._queue.qsize()})

    def detach_reader(self) -> None:
        """Mark the reading side as gone so further writes fail immediately."""

        self._reader_gone = True
        while not self._queue.empty():
            self._queue.get_nowait()

    async def frames(self) -> AsyncIterator[str]:
        while True:
            if self._closed and self._queue.empty():
                return
            frame = await self._queue.get()
            if frame is _SENTINEL:
                return
            yield frame  # type: ignore[misc]

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
import logging

from app.api.schemas.podcast import PodcastPreviewRequest
from app.services.contracts import LiveSessionProtocol, PaperServiceProtocol
from app.services.conversation_driver import ConversationDriver, ConversationOutcome
from app.services.conversation_models import SessionContext
from app.services.stream_transport import QueueEventSink

logger = logging.getLogger(__name__)


class LiveSession(LiveSessionProtocol):
    """One driver task paired with the sink its HTTP response reads from."""

    def __init__(self, *, context: SessionContext, sink: QueueEventSink, task: asyncio.Task[ConversationOutcome]) -> None:
        self._context = context
        self._sink = sink
        self._task = task
        self._closed = False

    @property
    def request_id(self) -> str:
        return self._context.request_id or ""

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def task(self) -> asyncio.Task[ConversationOutcome]:
        return self._task

    async def frames(self) -> AsyncIterator[str]:
        try:
            async for frame in self._sink.frames():
                yield frame
        finally:
            await self.close()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self._task.done():
            logger.info("client went away; cancelling conversation", extra={"request_id": self.request_id})
            self._sink.detach_reader()
            self._task.cancel()


class ConversationService:
    """Opens live preview sessions: paper validation first, then a background driver."""

    def __init__(
        self,
        *,
        paper_service: PaperServiceProtocol,
        driver_factory: Callable[[], ConversationDriver],
        turn_count: int = 8,
        sink_max_frames: int = 64,
        sink_write_timeout_seconds: float = 10.0,
    ) -> None:
        self._paper_service = paper_service
        self._driver_factory = driver_factory
        self._turn_count = turn_count
        self._sink_max_frames = sink_max_frames
        self._sink_write_timeout_seconds = sink_write_timeout_seconds

    async def open_session(self, request: PodcastPreviewRequest, request_id: str) -> LiveSession:
        paper_id = str(request.paper_id)
        paper = await self._paper_service.get_selected_paper(paper_id)
        context = SessionContext(
            paper_id=paper.id,
            paper_title=paper.title,
            target_turn_count=self._turn_count,
            episode=request.episode,
            duration_seconds=request.duration_seconds,
            request_id=request_id,
        )
        driver = self._driver_factory()
        sink = QueueEventSink(max_frames=self._sink_max_frames, write_timeout_seconds=self._sink_write_timeout_seconds)
        task = asyncio.create_task(driver.run(context, sink), name=f"conversation-{request_id}")
        logger.info(
            "live session opened",
            extra={"request_id": request_id, "paper_id": paper.id, "turn_count": context.target_turn_count},
        )
        return LiveSession(context=context, sink=sink, task=task)

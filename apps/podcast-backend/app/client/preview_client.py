from __future__ import annotations

import logging

import httpx

from app.client.session import ConversationSession, PreviewRequest
from app.client.supervisor import ConnectionState, ConnectionSupervisor, EventListener, StateListener
from app.core.settings import Settings

logger = logging.getLogger(__name__)


class PodcastPreviewClient:
    """Async client for live podcast previews. One conversation at a time per client."""

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        on_state_change: StateListener | None = None,
        on_event: EventListener | None = None,
    ) -> None:
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=settings.podcast_backend_base_url)
        self._supervisor = ConnectionSupervisor(
            self._http,
            retry_policy=settings.client_retry_policy,
            heartbeat_interval_seconds=settings.client_heartbeat_interval_seconds,
            heartbeat_timeout_multiplier=settings.client_heartbeat_timeout_multiplier,
            request_timeout_seconds=settings.client_request_timeout_seconds,
            on_state_change=on_state_change,
            on_event=on_event,
        )

    @property
    def connection_state(self) -> ConnectionState:
        return self._supervisor.state

    @property
    def session(self) -> ConversationSession | None:
        return self._supervisor.session

    @property
    def supervisor(self) -> ConnectionSupervisor:
        return self._supervisor

    async def generate_live_preview(
        self,
        paper_id: str,
        episode: int = 1,
        duration_seconds: int = 10,
    ) -> ConversationSession:
        """Stream one conversation to completion. Raises on terminal connection or server errors."""

        request = PreviewRequest(paper_id=paper_id, episode=episode, duration_seconds=duration_seconds)
        logger.info("starting live preview", extra={"paper_id": paper_id, "episode": episode})
        return await self._supervisor.run(request)

    async def stop(self) -> None:
        await self._supervisor.cancel()

    async def aclose(self) -> None:
        await self.stop()
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> PodcastPreviewClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

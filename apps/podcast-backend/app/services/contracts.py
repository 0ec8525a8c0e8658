from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

import asyncpg

from app.api.schemas.podcast import PodcastPreviewRequest
from app.services.conversation_models import Paper


class DatabaseServiceProtocol(Protocol):
    """Abstraction for async SQL execution against the podcast Postgres store."""

    async def connect(self) -> None:
        """Initialize underlying DB resources before request handling begins."""

    async def disconnect(self) -> None:
        """Release open DB resources during application shutdown."""

    async def fetchrow(self, query: str, *args: object) -> asyncpg.Record | None:
        """Execute a query and return a single row, or ``None`` when no row matches."""


class PaperServiceProtocol(Protocol):
    """Lookup contract for papers that can be turned into a conversation."""

    async def get_paper(self, paper_id: str) -> Paper | None:
        """Load a paper by id, or ``None`` when it does not exist."""

    async def get_selected_paper(self, paper_id: str) -> Paper:
        """Load a paper that is in the selected state or raise a ``PaperLookupError``."""


class LiveSessionProtocol(Protocol):
    """Handle to one running conversation, read by exactly one HTTP response."""

    @property
    def request_id(self) -> str:
        """Correlation id echoed to the client and attached to logs."""

    def frames(self) -> AsyncIterator[str]:
        """Yield encoded SSE frames until the session reaches its terminal event."""

    async def close(self) -> None:
        """Stop the driver and release the stream. Idempotent."""


class ConversationServiceProtocol(Protocol):
    """Use-case contract for opening live podcast preview sessions."""

    async def open_session(self, request: PodcastPreviewRequest, request_id: str) -> LiveSessionProtocol:
        """Validate the paper and start streaming, or raise before any frame is produced."""

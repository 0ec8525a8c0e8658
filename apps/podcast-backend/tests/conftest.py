"""Shared test utilities and fixtures for podcast-backend tests."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path
from types import SimpleNamespace

import pytest
import punq

from app.core.errors import ProviderError, TransportWriteError
from app.core.settings import Settings
from app.services.conversation_models import SessionContext, Speaker, Utterance
from app.services.conversation_stream import ConversationEventFactory

SELECTED_PAPER_ID = "6f1c2a52-8d7e-4b1a-9d43-1f7f0f8a2c11"
DISCOVERED_PAPER_ID = "0b9a6d1e-3c4f-4e8a-8a1b-5f2e7c9d0a33"
MISSING_PAPER_ID = "d2e4f6a8-1b3c-4d5e-8f70-9a1b2c3d4e5f"
BUNDLED_MOCK_MESSAGES = str(Path(__file__).resolve().parents[1] / "mock-data" / "turn-source-messages.md")


class FakeDatabaseService:
    """Shared fake DB service used at the external DB boundary in unit tests."""

    def __init__(self, papers: dict[str, dict[str, str]] | None = None) -> None:
        self.papers = papers if papers is not None else {
            SELECTED_PAPER_ID: {"id": SELECTED_PAPER_ID, "title": "Attention Is All You Need", "status": "SELECTED"},
            DISCOVERED_PAPER_ID: {"id": DISCOVERED_PAPER_ID, "title": "Unreviewed Draft", "status": "DISCOVERED"},
        }
        self.fetchrow_calls: list[tuple[str, tuple]] = []
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def fetchrow(self, query: str, *args):
        self.fetchrow_calls.append((query, args))
        if "FROM papers" in query:
            return self.papers.get(str(args[0]))
        return None


class ScriptedTurnSource:
    """Turn source that returns scripted lines or raises scripted provider errors per call."""

    def __init__(self, script: Sequence[str | Exception] | None = None, *, delay_seconds: float = 0.0) -> None:
        self._script = list(script or [])
        self._delay_seconds = delay_seconds
        self.calls: list[tuple[Speaker, int]] = []

    async def generate_turn(self, speaker: Speaker, context: SessionContext, history: Sequence[Utterance]) -> str:
        self.calls.append((speaker, len(history) + 1))
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
        if self._script:
            item = self._script.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return f"{speaker.value} line {len(history) + 1} about {context.paper_title}"


class RecordingSink:
    """Event sink that keeps every frame and can be told to fail after N writes."""

    def __init__(self, fail_after: int | None = None) -> None:
        self.frames: list[str] = []
        self.closed = 0
        self._fail_after = fail_after

    async def send(self, frame: str) -> None:
        if self._fail_after is not None and len(self.frames) >= self._fail_after:
            raise TransportWriteError("client disconnected")
        self.frames.append(frame)

    async def close(self) -> None:
        self.closed += 1

    @property
    def event_types(self) -> list[str]:
        return [frame.split("\n", 1)[0].removeprefix("event: ") for frame in self.frames]


def retryable_error(status_code: int = 503) -> ProviderError:
    return ProviderError(status_code=status_code, message="upstream unavailable", retryable=True)


def fatal_error(status_code: int = 400) -> ProviderError:
    return ProviderError(status_code=status_code, message="bad request", retryable=False)


@pytest.fixture
def fake_database_service() -> FakeDatabaseService:
    return FakeDatabaseService()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        OPENAI_API_KEY="sk-test",
        PACING_ENABLED=False,
        TURN_RETRY_BASE_DELAY_SECONDS=0,
        TURN_RETRY_MAX_DELAY_SECONDS=0,
    )


@pytest.fixture
def session_context() -> SessionContext:
    return SessionContext(paper_id=SELECTED_PAPER_ID, paper_title="Attention Is All You Need", request_id="req-1")


@pytest.fixture
def fixed_events() -> ConversationEventFactory:
    return ConversationEventFactory(clock=lambda: 1_700_000_000_000)


def build_test_request(container: punq.Container, *, headers: dict[str, str] | None = None):
    """Build a request-shaped object using a real punq container in app state."""

    return SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(container=container)),
        headers=headers or {},
    )


def build_test_container(bindings: dict[object, object]) -> punq.Container:
    """Create a punq container and bind protocol/service keys to test doubles."""

    container = punq.Container()
    for key, value in bindings.items():
        container.register(key, instance=value)
    return container

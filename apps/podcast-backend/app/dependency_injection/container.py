from __future__ import annotations

import punq
from fastapi import Request

from app.agents.base import TurnSource
from app.agents.factory import build_turn_source
from app.core.settings import Settings
from app.services.contracts import ConversationServiceProtocol, DatabaseServiceProtocol, PaperServiceProtocol
from app.services.conversation_driver import ConversationDriver
from app.services.conversation_service import ConversationService
from app.services.database_service import DatabaseService
from app.services.pacing import NoPacing, PacingStrategy, RandomPacing
from app.services.paper_service import PaperService


def build_pacing(settings: Settings) -> PacingStrategy:
    if not settings.pacing_enabled:
        return NoPacing()
    return RandomPacing(
        typing_min_seconds=settings.typing_min_seconds,
        typing_max_seconds=settings.typing_max_seconds,
        between_min_seconds=settings.pacing_min_seconds,
        between_max_seconds=settings.pacing_max_seconds,
    )


def build_container(settings: Settings) -> punq.Container:
    container = punq.Container()
    container.register(Settings, instance=settings)

    container.register(
        DatabaseServiceProtocol,
        factory=lambda: DatabaseService(
            dsn=settings.podcast_db_dsn,
            min_size=settings.podcast_db_pool_min_size,
            max_size=settings.podcast_db_pool_max_size,
            command_timeout_seconds=settings.podcast_db_command_timeout_seconds,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(PaperServiceProtocol, factory=PaperService, scope=punq.Scope.singleton)
    container.register(TurnSource, factory=lambda: build_turn_source(settings), scope=punq.Scope.singleton)
    container.register(
        PacingStrategy,
        factory=lambda: build_pacing(settings),
        scope=punq.Scope.singleton,
    )

    def _build_conversation_service() -> ConversationService:
        turn_source = container.resolve(TurnSource)
        pacing = container.resolve(PacingStrategy)
        return ConversationService(
            paper_service=container.resolve(PaperServiceProtocol),
            driver_factory=lambda: ConversationDriver(
                turn_source=turn_source,
                retry_policy=settings.turn_retry_policy,
                pacing=pacing,
                sign_off=f"Thanks for tuning in to {settings.show_name}!",
                keepalive_interval_seconds=settings.stream_keepalive_interval_seconds,
            ),
            turn_count=settings.conversation_turn_count,
            sink_max_frames=settings.stream_queue_max_frames,
            sink_write_timeout_seconds=settings.stream_write_timeout_seconds,
        )

    container.register(ConversationServiceProtocol, factory=_build_conversation_service, scope=punq.Scope.singleton)
    return container


def register_turn_source(container: punq.Container, turn_source: TurnSource) -> None:
    container.register(TurnSource, instance=turn_source)


def get_container(request: Request) -> punq.Container:
    return request.app.state.container

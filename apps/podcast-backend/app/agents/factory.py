from __future__ import annotations

import logging

from app.agents.base import TurnSource
from app.agents.mock_turn_source import MockTurnSource
from app.agents.openai_turn_source import OpenAITurnSource
from app.core.errors import ProviderConfigurationError
from app.core.settings import Settings

logger = logging.getLogger(__name__)


def build_turn_source(settings: Settings) -> TurnSource:
    """Create the real or file-driven turn source. Fails fast on missing credentials."""

    if settings.turn_source_use_mock:
        logger.info("using MockTurnSource", extra={"messages_file": settings.turn_source_mock_messages_file})
        return MockTurnSource(messages_file=settings.turn_source_mock_messages_file)

    if not settings.openai_api_key:
        raise ProviderConfigurationError("OPENAI_API_KEY is required unless TURN_SOURCE_USE_MOCK is enabled")

    logger.info(
        "using OpenAI turn source",
        extra={"expert_model": settings.turn_model_expert, "interviewer_model": settings.turn_model_interviewer},
    )
    return OpenAITurnSource(
        settings.openai_api_key,
        expert_model=settings.turn_model_expert,
        interviewer_model=settings.turn_model_interviewer,
        show_name=settings.show_name,
        temperature=settings.turn_temperature,
        max_tokens=settings.turn_max_tokens,
        timeout_seconds=settings.turn_timeout_seconds,
    )

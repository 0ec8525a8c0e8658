from __future__ import annotations

from collections.abc import Sequence
import logging

from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncOpenAI, RateLimitError

from app.agents.base import TurnSource
from app.agents.prompts import build_messages
from app.core.errors import EmptyResponseError, ProviderError
from app.core.retry import is_retryable_status
from app.services.conversation_models import SessionContext, Speaker, Utterance

logger = logging.getLogger(__name__)


class OpenAITurnSource(TurnSource):
    """Chat-completions turn source. Retries are left to the conversation driver."""

    def __init__(
        self,
        api_key: str,
        *,
        expert_model: str,
        interviewer_model: str,
        show_name: str,
        temperature: float = 0.7,
        max_tokens: int = 200,
        timeout_seconds: float = 30.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        self._models = {Speaker.EXPERT: expert_model, Speaker.INTERVIEWER: interviewer_model}
        self._show_name = show_name
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds

    async def generate_turn(self, speaker: Speaker, context: SessionContext, history: Sequence[Utterance]) -> str:
        turn_index = len(history) + 1
        messages = build_messages(speaker, turn_index, context, history, self._show_name)
        logger.debug(
            "requesting turn from provider",
            extra={"speaker": speaker.value, "exchange": turn_index, "message_count": len(messages)},
        )
        try:
            response = await self._client.chat.completions.create(
                model=self._models[speaker],
                messages=messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                timeout=self._timeout_seconds,
            )
        except (APITimeoutError,) as exc:
            raise ProviderError(status_code=504, message=str(exc), retryable=True) from exc
        except (APIConnectionError,) as exc:
            raise ProviderError(status_code=503, message=str(exc), retryable=True) from exc
        except (RateLimitError,) as exc:
            raise ProviderError(status_code=429, message=str(exc), retryable=True) from exc
        except (APIStatusError,) as exc:
            status = exc.status_code or 502
            raise ProviderError(status_code=status, message=str(exc), retryable=is_retryable_status(status)) from exc
        except APIError as exc:
            raise ProviderError(status_code=502, message=str(exc), retryable=True) from exc

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        text = content.strip() if isinstance(content, str) else ""
        if not text:
            raise EmptyResponseError()
        return text

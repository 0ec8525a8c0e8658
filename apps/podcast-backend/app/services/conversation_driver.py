from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import logging

from app.agents.base import TurnSource
from app.agents.fallback import fallback_utterance
from app.core.errors import EventEncodingError, ProviderError, TransportWriteError
from app.core.retry import RetryPolicy
from app.services.conversation_models import SessionContext, Speaker, Utterance
from app.services.conversation_stream import KEEPALIVE_FRAME, ConversationEvent, ConversationEventFactory, encode_sse_event
from app.services.pacing import NoPacing, PacingStrategy
from app.services.stream_transport import EventSink

logger = logging.getLogger(__name__)

DEFAULT_SIGN_OFF = "Thanks for tuning in to The Notebook Pod!"


@dataclass
class ConversationOutcome:
    """What a finished driver run produced. ``error`` is set when the session ended on an error event."""

    utterances: list[Utterance] = field(default_factory=list)
    successful_turns: int = 0
    fallback_turns: int = 0
    error: str | None = None

    @property
    def completed(self) -> bool:
        return self.error is None


class _SessionAborted(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConversationDriver:
    """Runs one alternating two-host session and writes its events to a sink.

    Event order per session::

        conversation_start
        (typing_start, typing_stop, message) * target_turn_count
        conversation_end | error

    Provider failures are retried with ``retry_policy`` and then replaced by fallback
    lines, so they never end a session. A failed write ends it immediately.

    With ``keepalive_interval_seconds`` set, a ``: keepalive`` comment frame is written
    on that interval between ``conversation_start`` and the terminal event, so slow
    turns never leave the stream silent long enough to trip a client heartbeat.
    """

    def __init__(
        self,
        *,
        turn_source: TurnSource,
        retry_policy: RetryPolicy | None = None,
        pacing: PacingStrategy | None = None,
        events: ConversationEventFactory | None = None,
        sign_off: str = DEFAULT_SIGN_OFF,
        keepalive_interval_seconds: float | None = None,
    ) -> None:
        if keepalive_interval_seconds is not None and keepalive_interval_seconds <= 0:
            raise ValueError("keepalive_interval_seconds must be positive")
        self._turn_source = turn_source
        self._retry_policy = retry_policy or RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=8.0)
        self._pacing = pacing or NoPacing()
        self._events = events or ConversationEventFactory()
        self._sign_off = sign_off
        self._keepalive_interval_seconds = keepalive_interval_seconds

    async def run(self, context: SessionContext, sink: EventSink) -> ConversationOutcome:
        outcome = ConversationOutcome()
        log_extra = {"paper_id": context.paper_id, "request_id": context.request_id}
        logger.info("conversation started", extra={**log_extra, "turn_count": context.target_turn_count})

        try:
            await self._emit(sink, self._events.conversation_start(context))
            async with self._keepalive(sink):
                for turn_index in range(1, context.target_turn_count + 1):
                    if turn_index > 1:
                        await self._pacing.between_turns()
                    await self._run_turn(context, sink, turn_index, outcome)

            await self._emit(
                sink,
                self._events.conversation_end(
                    self._sign_off,
                    total=context.target_turn_count,
                    successful=outcome.successful_turns,
                    fallback=outcome.fallback_turns,
                ),
            )
            logger.info(
                "conversation completed",
                extra={
                    **log_extra,
                    "successful_exchanges": outcome.successful_turns,
                    "fallback_exchanges": outcome.fallback_turns,
                },
            )
        except _SessionAborted as exc:
            outcome.error = exc.reason
            logger.error("conversation aborted", extra={**log_extra, "reason": exc.reason})
            await self._report_error(sink, exc.reason, context.request_id)
        except Exception:
            outcome.error = "Live conversation encountered an error"
            logger.exception("conversation failed", extra=log_extra)
            await self._report_error(sink, outcome.error, context.request_id)
        finally:
            await sink.close()

        return outcome

    async def _run_turn(
        self,
        context: SessionContext,
        sink: EventSink,
        turn_index: int,
        outcome: ConversationOutcome,
    ) -> None:
        speaker = context.speaker_for(turn_index)
        await self._emit(sink, self._events.typing_start(speaker, turn_index))
        await self._pacing.typing()

        text = await self._generate_with_retry(speaker, context, outcome.utterances, turn_index)
        used_fallback = text is None
        if text is None:
            text = fallback_utterance(speaker, turn_index, context.paper_title)

        utterance = self._events.utterance(speaker, text, turn_index, fallback=used_fallback)
        await self._emit(sink, self._events.typing_stop(speaker, turn_index))
        await self._emit(sink, self._events.message(utterance))

        outcome.utterances.append(utterance)
        if used_fallback:
            outcome.fallback_turns += 1
        else:
            outcome.successful_turns += 1

    async def _generate_with_retry(
        self,
        speaker: Speaker,
        context: SessionContext,
        history: list[Utterance],
        turn_index: int,
    ) -> str | None:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._turn_source.generate_turn(speaker, context, tuple(history))
            except ProviderError as exc:
                if not exc.retryable or not self._retry_policy.allows_retry_after(attempt):
                    logger.warning(
                        "turn source failed, using fallback",
                        extra={
                            "speaker": speaker.value,
                            "exchange": turn_index,
                            "attempt": attempt,
                            "status_code": exc.status_code,
                            "retryable": exc.retryable,
                        },
                    )
                    return None

                delay = self._retry_policy.delay_for(attempt)
                logger.info(
                    "retrying turn source",
                    extra={"speaker": speaker.value, "exchange": turn_index, "attempt": attempt, "delay_seconds": delay},
                )
                await asyncio.sleep(delay)

    @asynccontextmanager
    async def _keepalive(self, sink: EventSink) -> AsyncIterator[None]:
        if self._keepalive_interval_seconds is None:
            yield
            return

        task = asyncio.create_task(self._send_keepalives(sink, self._keepalive_interval_seconds))
        try:
            yield
        finally:
            task.cancel()
            await asyncio.wait([task])

    async def _send_keepalives(self, sink: EventSink, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await sink.send(KEEPALIVE_FRAME)
            except TransportWriteError:
                # The next event write reports the failure.
                logger.debug("keepalive write failed; stopping keepalives")
                return

    async def _emit(self, sink: EventSink, event: ConversationEvent) -> None:
        try:
            frame = encode_sse_event(event)
        except EventEncodingError as exc:
            raise _SessionAborted(f"failed to encode {event.get('type')} event: {exc}") from exc

        try:
            await sink.send(frame)
        except TransportWriteError as exc:
            raise _SessionAborted(f"stream write failed: {exc}") from exc
        logger.debug("sse event written", extra={"event_type": event["type"]})

    async def _report_error(self, sink: EventSink, reason: str, request_id: str | None) -> None:
        try:
            await sink.send(encode_sse_event(self._events.error(reason, request_id)))
        except TransportWriteError:
            logger.info("could not deliver error event; stream already closed", extra={"request_id": request_id})

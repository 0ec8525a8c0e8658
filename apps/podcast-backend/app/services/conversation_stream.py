from __future__ import annotations

from collections.abc import Callable
import json
import time
from typing import Any, Literal, TypedDict

from app.core.errors import EventEncodingError
from app.services.conversation_models import SessionContext, Speaker, Utterance


class ConversationStartEventData(TypedDict):
    paper_id: str
    paper_title: str
    speakers: list[str]
    episode: int
    duration_seconds: int
    turn_count: int
    timestamp: int


class TypingEventData(TypedDict):
    speaker: str
    exchange: int
    timestamp: int


class MessageEventData(TypedDict):
    speaker: str
    text: str
    exchange: int
    fallback: bool
    timestamp: int


class ConversationEndEventData(TypedDict):
    message: str
    total_exchanges: int
    successful_exchanges: int
    fallback_exchanges: int
    timestamp: int


class ErrorEventData(TypedDict, total=False):
    message: str
    request_id: str | None
    timestamp: int


ConversationEventType = Literal[
    "conversation_start",
    "typing_start",
    "typing_stop",
    "message",
    "conversation_end",
    "error",
]

EVENT_TYPES: frozenset[str] = frozenset(
    {"conversation_start", "typing_start", "typing_stop", "message", "conversation_end", "error"}
)
TERMINAL_EVENT_TYPES: frozenset[str] = frozenset({"conversation_end", "error"})


class ConversationEvent(TypedDict):
    type: ConversationEventType
    data: (
        ConversationStartEventData
        | TypingEventData
        | MessageEventData
        | ConversationEndEventData
        | ErrorEventData
        | dict[str, Any]
    )


_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "conversation_start": ("timestamp",),
    "typing_start": ("speaker", "timestamp"),
    "typing_stop": ("speaker", "timestamp"),
    "message": ("speaker", "text", "exchange", "timestamp"),
    "conversation_end": ("message", "timestamp"),
    "error": ("message", "timestamp"),
}
_SPEAKER_LABELS = frozenset(speaker.value for speaker in Speaker)


def now_ms() -> int:
    return int(time.time() * 1000)


class ConversationEventFactory:
    """Builds timestamped conversation events for a single session."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock

    def conversation_start(self, context: SessionContext) -> ConversationEvent:
        return {
            "type": "conversation_start",
            "data": {
                "paper_id": context.paper_id,
                "paper_title": context.paper_title,
                "speakers": [speaker.value for speaker in context.speaker_sequence],
                "episode": context.episode,
                "duration_seconds": context.duration_seconds,
                "turn_count": context.target_turn_count,
                "timestamp": self._clock(),
            },
        }

    def typing_start(self, speaker: Speaker, exchange: int) -> ConversationEvent:
        return {"type": "typing_start", "data": {"speaker": speaker.value, "exchange": exchange, "timestamp": self._clock()}}

    def typing_stop(self, speaker: Speaker, exchange: int) -> ConversationEvent:
        return {"type": "typing_stop", "data": {"speaker": speaker.value, "exchange": exchange, "timestamp": self._clock()}}

    def utterance(self, speaker: Speaker, text: str, exchange: int, *, fallback: bool) -> Utterance:
        return Utterance(speaker=speaker, text=text, timestamp_ms=self._clock(), turn_index=exchange, fallback=fallback)

    def message(self, utterance: Utterance) -> ConversationEvent:
        return {
            "type": "message",
            "data": {
                "speaker": utterance.speaker.value,
                "text": utterance.text,
                "exchange": utterance.turn_index,
                "fallback": utterance.fallback,
                "timestamp": utterance.timestamp_ms,
            },
        }

    def conversation_end(self, message: str, *, total: int, successful: int, fallback: int) -> ConversationEvent:
        return {
            "type": "conversation_end",
            "data": {
                "message": message,
                "total_exchanges": total,
                "successful_exchanges": successful,
                "fallback_exchanges": fallback,
                "timestamp": self._clock(),
            },
        }

    def error(self, message: str, request_id: str | None = None) -> ConversationEvent:
        data: ErrorEventData = {"message": message, "timestamp": self._clock()}
        if request_id:
            data["request_id"] = request_id
        return {"type": "error", "data": data}


def encode_sse_event(event: ConversationEvent) -> str:
    """Serialize one event into an ``event:``/``data:`` frame ended by a blank line."""

    event_type = event.get("type") if isinstance(event, dict) else None
    if event_type not in EVENT_TYPES:
        raise EventEncodingError(f"unknown conversation event type: {event_type!r}")

    data = event.get("data")
    if not isinstance(data, dict):
        raise EventEncodingError(f"{event_type} event data must be an object")

    missing = [name for name in _REQUIRED_FIELDS[event_type] if data.get(name) is None]
    if missing:
        raise EventEncodingError(f"{event_type} event missing fields: {', '.join(missing)}")

    speaker = data.get("speaker")
    if speaker is not None and speaker not in _SPEAKER_LABELS:
        raise EventEncodingError(f"unknown speaker label: {speaker!r}")

    try:
        payload = json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise EventEncodingError(f"{event_type} event data is not JSON serializable") from exc

    return f"event: {event_type}\ndata: {payload}\n\n"


KEEPALIVE_FRAME = ": keepalive\n\n"

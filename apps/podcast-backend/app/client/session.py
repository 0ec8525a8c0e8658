from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Literal

from app.services.conversation_models import Speaker, Utterance
from app.services.conversation_stream import TERMINAL_EVENT_TYPES, ConversationEvent

logger = logging.getLogger(__name__)

SessionErrorKind = Literal["server_error", "incomplete_stream", "connection", "heartbeat_timeout", "cancelled"]


@dataclass(frozen=True)
class PreviewRequest:
    paper_id: str
    episode: int = 1
    duration_seconds: int = 10

    def to_payload(self) -> dict[str, Any]:
        return {"paperId": self.paper_id, "episode": self.episode, "durationSeconds": self.duration_seconds}


class ConversationSession:
    """Client-side state for one conversation, owned by whoever started it.

    The dialogue log only grows. Re-delivered messages (same exchange number) are
    ignored, and a fresh ``conversation_start`` after a reconnect resets the log so
    a restarted session replaces the partial one.
    """

    def __init__(self, request: PreviewRequest) -> None:
        self.request = request
        self.paper_title: str | None = None
        self.turn_count: int | None = None
        self.speakers: tuple[Speaker, ...] = ()
        self.is_live = False
        self.is_complete = False
        self.typing_speaker: Speaker | None = None
        self.end_message: str | None = None
        self.successful_exchanges: int | None = None
        self.fallback_exchanges: int | None = None
        self.error_kind: SessionErrorKind | None = None
        self.error_message: str | None = None
        self._dialogue: list[Utterance] = []
        self._seen_exchanges: set[int] = set()
        self._terminal = False

    @property
    def dialogue(self) -> tuple[Utterance, ...]:
        return tuple(self._dialogue)

    @property
    def has_dialogue(self) -> bool:
        return bool(self._dialogue)

    @property
    def terminal(self) -> bool:
        return self._terminal

    def dispatch(self, event: ConversationEvent) -> bool:
        """Apply one decoded event. Returns ``True`` once the session has reached its terminal event."""

        if self._terminal:
            logger.warning("ignoring event after terminal event", extra={"event_type": event["type"]})
            return True

        event_type = event["type"]
        data: dict[str, Any] = dict(event["data"])
        if event_type == "conversation_start":
            self._on_start(data)
        elif event_type == "typing_start":
            self.typing_speaker = Speaker(data["speaker"])
        elif event_type == "typing_stop":
            self.typing_speaker = None
        elif event_type == "message":
            self._on_message(data)
        elif event_type == "conversation_end":
            self.end_message = data.get("message")
            self.successful_exchanges = data.get("successful_exchanges")
            self.fallback_exchanges = data.get("fallback_exchanges")
            self.is_complete = True
        elif event_type == "error":
            self.error_kind = "server_error"
            self.error_message = str(data.get("message") or "Server error occurred")

        if event_type in TERMINAL_EVENT_TYPES:
            self._terminal = True
            self.is_live = False
            self.typing_speaker = None
            logger.info("conversation reached terminal event", extra={"event_type": event_type, "turns": len(self._dialogue)})
        return self._terminal

    def fail(self, kind: SessionErrorKind, message: str) -> None:
        """Record a consumer-side failure that ended the session without a terminal event."""

        self.error_kind = kind
        self.error_message = message
        self.is_live = False
        self.typing_speaker = None

    def _on_start(self, data: dict[str, Any]) -> None:
        if self._dialogue:
            logger.info("conversation restarted; clearing partial dialogue", extra={"turns": len(self._dialogue)})
        self._dialogue.clear()
        self._seen_exchanges.clear()
        self.paper_title = data.get("paper_title")
        self.turn_count = data.get("turn_count")
        self.speakers = tuple(speaker for speaker in Speaker if speaker.value in data.get("speakers", ()))
        self.is_live = True
        self.error_kind = None
        self.error_message = None

    def _on_message(self, data: dict[str, Any]) -> None:
        exchange = int(data.get("exchange") or len(self._dialogue) + 1)
        speaker = Speaker(data["speaker"])
        if self.typing_speaker is speaker:
            self.typing_speaker = None
        if exchange in self._seen_exchanges:
            logger.debug("skipping duplicate message", extra={"exchange": exchange})
            return
        self._seen_exchanges.add(exchange)
        self._dialogue.append(
            Utterance(
                speaker=speaker,
                text=str(data["text"]),
                timestamp_ms=int(data.get("timestamp") or 0),
                turn_index=exchange,
                fallback=bool(data.get("fallback", False)),
            )
        )

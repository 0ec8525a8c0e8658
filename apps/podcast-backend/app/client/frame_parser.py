from __future__ import annotations

import codecs
import json
import logging

from pydantic import ValidationError

from app.api.schemas.podcast import (
    ConversationEndEventPayload,
    ErrorEventPayload,
    MessageEventPayload,
    TypingEventPayload,
)
from app.client.errors import FrameParseError
from app.services.conversation_stream import EVENT_TYPES, ConversationEvent

logger = logging.getLogger(__name__)

_PAYLOAD_MODELS = {
    "typing_start": TypingEventPayload,
    "typing_stop": TypingEventPayload,
    "message": MessageEventPayload,
    "conversation_end": ConversationEndEventPayload,
    "error": ErrorEventPayload,
}


def decode_frame(raw_frame: str) -> ConversationEvent:
    """Decode one blank-line-delimited SSE frame into a conversation event."""

    event_type: str | None = None
    data_lines: list[str] = []
    for line in raw_frame.split("\n"):
        if not line or line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_type = value.strip()
        elif field == "data":
            data_lines.append(value)

    if not data_lines:
        raise FrameParseError("frame has no data field")

    try:
        payload = json.loads("\n".join(data_lines))
    except json.JSONDecodeError as exc:
        raise FrameParseError(f"frame data is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise FrameParseError("frame data must be a JSON object")

    if event_type is None:
        # Frames without an event line fall back to the payload's own type tag.
        event_type = payload.get("type") or ("message" if payload.get("speaker") and payload.get("text") else None)
    if event_type not in EVENT_TYPES:
        raise FrameParseError(f"unknown event type: {event_type!r}")

    model = _PAYLOAD_MODELS.get(event_type)
    if model is not None:
        try:
            model.model_validate(payload)
        except ValidationError as exc:
            raise FrameParseError(f"invalid {event_type} payload: {exc.error_count()} error(s)") from exc

    return {"type": event_type, "data": payload}  # type: ignore[typeddict-item]


class SSEFrameParser:
    """Incremental parser: feed raw byte chunks, get back complete events only.

    Frames may be split at any byte offset, including inside a multi-byte UTF-8
    character. Malformed frames are logged and dropped without stopping the stream.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.dropped_frames = 0

    def feed(self, chunk: bytes) -> list[ConversationEvent]:
        self._buffer += self._decoder.decode(chunk)
        self._buffer = self._buffer.replace("\r\n", "\n")
        *complete, self._buffer = self._buffer.split("\n\n")
        return self._decode_all(complete)

    def finish(self) -> list[ConversationEvent]:
        """Flush at end of stream. A trailing frame without its blank line is discarded."""

        self._buffer += self._decoder.decode(b"", final=True)
        leftover = self._buffer.strip()
        self._buffer = ""
        if leftover:
            self.dropped_frames += 1
            logger.warning("discarding incomplete trailing frame", extra={"fragment_length": len(leftover)})
        return []

    def _decode_all(self, raw_frames: list[str]) -> list[ConversationEvent]:
        events: list[ConversationEvent] = []
        for raw_frame in raw_frames:
            if all(not line or line.startswith(":") for line in raw_frame.split("\n")):
                # Blank or comment-only frames are keepalives.
                continue
            try:
                events.append(decode_frame(raw_frame))
            except FrameParseError as exc:
                self.dropped_frames += 1
                logger.warning("dropping malformed frame", extra={"reason": str(exc)})
        return events

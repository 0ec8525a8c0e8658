from __future__ import annotations

import pytest

from app.client.errors import FrameParseError
from app.client.frame_parser import SSEFrameParser, decode_frame
from app.services.conversation_models import SessionContext, Speaker
from app.services.conversation_stream import ConversationEventFactory, encode_sse_event


def _stream_bytes(events: ConversationEventFactory, context: SessionContext) -> bytes:
    expert_line = events.utterance(Speaker.EXPERT, "Schrödinger meets transformers 🚀", 1, fallback=False)
    interviewer_line = events.utterance(Speaker.INTERVIEWER, "Naïve question: why now?", 2, fallback=True)
    frames = [
        events.conversation_start(context),
        events.typing_start(Speaker.EXPERT, 1),
        events.typing_stop(Speaker.EXPERT, 1),
        events.message(expert_line),
        events.typing_start(Speaker.INTERVIEWER, 2),
        events.typing_stop(Speaker.INTERVIEWER, 2),
        events.message(interviewer_line),
        events.conversation_end("Thanks for tuning in!", total=2, successful=1, fallback=1),
    ]
    return "".join(encode_sse_event(frame) for frame in frames).encode("utf-8")


def test_events_are_independent_of_chunk_boundaries(
    fixed_events: ConversationEventFactory,
    session_context: SessionContext,
) -> None:
    stream = _stream_bytes(fixed_events, session_context)
    expected = SSEFrameParser().feed(stream)
    assert [event["type"] for event in expected] == [
        "conversation_start",
        "typing_start",
        "typing_stop",
        "message",
        "typing_start",
        "typing_stop",
        "message",
        "conversation_end",
    ]

    for offset in range(len(stream) + 1):
        parser = SSEFrameParser()
        events = parser.feed(stream[:offset]) + parser.feed(stream[offset:])
        assert events == expected, f"split at byte {offset}"
        assert parser.dropped_frames == 0


def test_byte_at_a_time_feed_preserves_multibyte_text(
    fixed_events: ConversationEventFactory,
    session_context: SessionContext,
) -> None:
    parser = SSEFrameParser()
    events = []
    for byte in _stream_bytes(fixed_events, session_context):
        events.extend(parser.feed(bytes([byte])))

    messages = [event for event in events if event["type"] == "message"]
    assert messages[0]["data"]["text"] == "Schrödinger meets transformers 🚀"
    assert messages[1]["data"]["text"] == "Naïve question: why now?"
    assert messages[1]["data"]["fallback"] is True


def test_malformed_frame_is_dropped_and_stream_continues() -> None:
    parser = SSEFrameParser()
    chunk = (
        b'event: typing_start\ndata: {"speaker": "Dr Ada", "timestamp": 1}\n\n'
        b"event: message\ndata: {not json\n\n"
        b'event: message\ndata: {"speaker": "Dr Ada", "text": "Hello", "exchange": 1, "timestamp": 2}\n\n'
    )

    events = parser.feed(chunk)

    assert [event["type"] for event in events] == ["typing_start", "message"]
    assert parser.dropped_frames == 1


def test_keepalive_comments_are_ignored() -> None:
    parser = SSEFrameParser()

    events = parser.feed(b': keepalive\n\nevent: typing_stop\ndata: {"speaker": "Sam", "timestamp": 3}\n\n')

    assert [event["type"] for event in events] == ["typing_stop"]
    assert parser.dropped_frames == 0


def test_crlf_line_endings_are_accepted() -> None:
    events = SSEFrameParser().feed(b'event: error\r\ndata: {"message": "boom", "timestamp": 4}\r\n\r\n')

    assert events == [{"type": "error", "data": {"message": "boom", "timestamp": 4}}]


def test_finish_discards_incomplete_trailing_frame() -> None:
    parser = SSEFrameParser()

    assert parser.feed(b'event: message\ndata: {"speaker": "Sam", "text": "cut of') == []
    assert parser.finish() == []
    assert parser.dropped_frames == 1


def test_decode_frame_infers_message_without_event_line() -> None:
    event = decode_frame('data: {"speaker": "Sam", "text": "Hi there", "timestamp": 5}')

    assert event["type"] == "message"
    assert event["data"]["text"] == "Hi there"


@pytest.mark.parametrize(
    "raw_frame",
    [
        "event: typing_start",
        'event: typing_start\ndata: {"speaker": "Narrator", "timestamp": 1}',
        'event: heartbeat\ndata: {"timestamp": 1}',
        "event: message\ndata: [1, 2, 3]",
        'event: message\ndata: {"speaker": "Sam", "timestamp": 1}',
    ],
)
def test_decode_frame_rejects_invalid_frames(raw_frame: str) -> None:
    with pytest.raises(FrameParseError):
        decode_frame(raw_frame)

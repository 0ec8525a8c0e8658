"""Streaming consumer for live podcast previews."""

from app.client.errors import (
    ConnectionFailedError,
    FrameParseError,
    HeartbeatTimeoutError,
    IncompleteStreamError,
    RetriesExhaustedError,
    ServerStreamError,
    SessionAlreadyActiveError,
)
from app.client.frame_parser import SSEFrameParser, decode_frame
from app.client.preview_client import PodcastPreviewClient
from app.client.session import ConversationSession, PreviewRequest
from app.client.supervisor import ConnectionState, ConnectionSupervisor

__all__ = [
    "ConnectionFailedError",
    "ConnectionState",
    "ConnectionSupervisor",
    "ConversationSession",
    "FrameParseError",
    "HeartbeatTimeoutError",
    "IncompleteStreamError",
    "PodcastPreviewClient",
    "PreviewRequest",
    "RetriesExhaustedError",
    "SSEFrameParser",
    "ServerStreamError",
    "SessionAlreadyActiveError",
    "decode_frame",
]

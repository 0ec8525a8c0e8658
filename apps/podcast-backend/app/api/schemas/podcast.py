import uuid
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.services.conversation_models import Speaker


class PodcastPreviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    paper_id: uuid.UUID = Field(
        ...,
        validation_alias=AliasChoices("paperId", "paper_id"),
        description="Id of a paper in the SELECTED lifecycle state",
    )
    episode: int = Field(default=1, ge=1, description="Episode number announced in the welcome line")
    duration_seconds: int = Field(
        default=10,
        ge=5,
        le=30,
        validation_alias=AliasChoices("durationSeconds", "duration_seconds", "duration"),
        description="Requested preview length; echoed in conversation_start",
    )


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human-readable failure reason")
    paperId: str | None = Field(default=None, description="Paper id the request referred to, when known")
    requestId: str | None = Field(default=None, description="Correlation id for server logs")
    details: list[dict[str, object]] | None = Field(default=None, description="Field-level validation errors")


class TypingEventPayload(BaseModel):
    speaker: Speaker = Field(..., description="Host label that started or stopped typing")
    exchange: int | None = Field(default=None, ge=1, description="Turn index the indicator belongs to")
    timestamp: int = Field(..., description="Server time in epoch milliseconds")


class MessageEventPayload(BaseModel):
    speaker: Speaker = Field(..., description="Host label")
    text: str = Field(..., description="Utterance text")
    exchange: int | None = Field(default=None, ge=1, description="1-based turn index, strictly increasing within a session")
    fallback: bool = Field(default=False, description="True when the line came from canned fallback content")
    timestamp: int = Field(..., description="Server time in epoch milliseconds")


class ConversationEndEventPayload(BaseModel):
    message: str = Field(..., description="Sign-off line")
    total_exchanges: int = Field(..., description="Configured turn count")
    successful_exchanges: int = Field(..., description="Turns produced by the provider")
    fallback_exchanges: int = Field(..., description="Turns produced from fallback content")
    timestamp: int


class ErrorEventPayload(BaseModel):
    message: str = Field(..., description="Terminal stream error detail")
    request_id: str | None = None
    timestamp: int


class ConversationStreamEvent(BaseModel):
    type: Literal["conversation_start", "typing_start", "typing_stop", "message", "conversation_end", "error"] = Field(
        ...,
        description="SSE event type",
    )
    data: MessageEventPayload | TypingEventPayload | ConversationEndEventPayload | ErrorEventPayload | dict[str, object]

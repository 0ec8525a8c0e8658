from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Speaker(StrEnum):
    """The two podcast hosts. Values are the labels used on the wire."""

    EXPERT = "Dr Ada"
    INTERVIEWER = "Sam"

    @property
    def other(self) -> Speaker:
        return Speaker.INTERVIEWER if self is Speaker.EXPERT else Speaker.EXPERT


DEFAULT_SPEAKER_SEQUENCE: tuple[Speaker, Speaker] = (Speaker.EXPERT, Speaker.INTERVIEWER)


@dataclass(frozen=True)
class Paper:
    id: str
    title: str
    status: str


@dataclass(frozen=True)
class Utterance:
    speaker: Speaker
    text: str
    timestamp_ms: int
    turn_index: int
    fallback: bool = False


@dataclass(frozen=True)
class SessionContext:
    """Immutable per-session parameters fixed when a conversation is requested."""

    paper_id: str
    paper_title: str
    target_turn_count: int = 8
    speaker_sequence: tuple[Speaker, Speaker] = DEFAULT_SPEAKER_SEQUENCE
    episode: int = 1
    duration_seconds: int = 10
    request_id: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.target_turn_count < 1:
            raise ValueError("target_turn_count must be at least 1")
        if len(self.speaker_sequence) != 2 or self.speaker_sequence[0] == self.speaker_sequence[1]:
            raise ValueError("speaker_sequence must contain both speakers exactly once")

    def speaker_for(self, turn_index: int) -> Speaker:
        """Speaker for a 1-based turn index; the first sequence entry opens."""

        return self.speaker_sequence[(turn_index - 1) % 2]

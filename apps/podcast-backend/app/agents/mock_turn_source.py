from __future__ import annotations

from collections.abc import Sequence
import itertools
import logging
from pathlib import Path

from app.agents.base import TurnSource
from app.services.conversation_models import SessionContext, Speaker, Utterance

logger = logging.getLogger(__name__)


class MockTurnSource(TurnSource):
    """Scripted turn source for local runs and demos.

    The messages file holds entries separated by ``--- message`` lines. An entry
    may start with a host label (``Dr Ada: ...`` / ``Sam: ...``) to pin it to that
    host; untagged entries are shared. Each host cycles through its own entries
    plus the shared ones, in file order. ``{title}`` and ``{episode}`` are filled
    from the session.
    """

    delimiter = "\n--- message\n"

    def __init__(self, messages_file: str) -> None:
        path = Path(messages_file)
        entries = [entry.strip() for entry in path.read_text(encoding="utf-8").split(self.delimiter)]
        scripts: dict[Speaker, list[str]] = {speaker: [] for speaker in Speaker}
        for entry in filter(None, entries):
            speaker, text = _split_label(entry)
            for target in (speaker,) if speaker is not None else tuple(Speaker):
                scripts[target].append(text)

        if not any(scripts.values()):
            raise ValueError(f"No mock messages found in {path}. Separate entries with {self.delimiter.strip()!r}.")
        self._cycles = {speaker: itertools.cycle(lines or ["..."]) for speaker, lines in scripts.items()}
        logger.info(
            "loaded mock turn source script",
            extra={
                "messages_file": str(path),
                "expert_lines": len(scripts[Speaker.EXPERT]),
                "interviewer_lines": len(scripts[Speaker.INTERVIEWER]),
            },
        )

    async def generate_turn(self, speaker: Speaker, context: SessionContext, history: Sequence[Utterance]) -> str:
        line = next(self._cycles[speaker])
        logger.debug("serving scripted turn", extra={"speaker": speaker.value, "exchange": len(history) + 1})
        return line.replace("{title}", context.paper_title).replace("{episode}", str(context.episode))


def _split_label(entry: str) -> tuple[Speaker | None, str]:
    label, separator, rest = entry.partition(":")
    if separator:
        for speaker in Speaker:
            if label.strip() == speaker.value:
                return speaker, rest.strip()
    return None, entry

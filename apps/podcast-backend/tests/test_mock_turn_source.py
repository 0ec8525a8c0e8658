from __future__ import annotations

from pathlib import Path

import pytest

from app.agents.mock_turn_source import MockTurnSource
from app.services.conversation_models import SessionContext, Speaker
from tests.conftest import BUNDLED_MOCK_MESSAGES


def _write(tmp_path: Path, content: str) -> str:
    messages_file = tmp_path / "messages.md"
    messages_file.write_text(content, encoding="utf-8")
    return str(messages_file)


@pytest.mark.asyncio
async def test_untagged_entries_cycle_for_both_hosts(tmp_path: Path, session_context: SessionContext) -> None:
    source = MockTurnSource(_write(tmp_path, "About {title}.\n--- message\nWhy does it matter?\n"))

    lines = [await source.generate_turn(Speaker.EXPERT, session_context, []) for _ in range(3)]

    assert lines == ["About Attention Is All You Need.", "Why does it matter?", "About Attention Is All You Need."]
    assert await source.generate_turn(Speaker.INTERVIEWER, session_context, []) == "About Attention Is All You Need."


@pytest.mark.asyncio
async def test_labelled_entries_are_pinned_to_their_host(tmp_path: Path, session_context: SessionContext) -> None:
    source = MockTurnSource(_write(tmp_path, "Dr Ada: Episode {episode}!\n--- message\nSam: A question: why?\n"))

    assert await source.generate_turn(Speaker.INTERVIEWER, session_context, []) == "A question: why?"
    assert await source.generate_turn(Speaker.EXPERT, session_context, []) == "Episode 1!"
    assert await source.generate_turn(Speaker.INTERVIEWER, session_context, []) == "A question: why?"


def test_mock_turn_source_rejects_empty_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        MockTurnSource(_write(tmp_path, "\n--- message\n"))


@pytest.mark.asyncio
async def test_bundled_script_opens_with_the_paper_title(session_context: SessionContext) -> None:
    source = MockTurnSource(messages_file=BUNDLED_MOCK_MESSAGES)

    opening = await source.generate_turn(Speaker.EXPERT, session_context, [])

    assert "Attention Is All You Need" in opening
    assert "episode 1" in opening

from __future__ import annotations

from app.agents.fallback import fallback_utterance
from app.services.conversation_models import Speaker


def test_fallback_is_deterministic_for_same_inputs() -> None:
    first = fallback_utterance(Speaker.INTERVIEWER, 4, "Graph Transformers")
    second = fallback_utterance(Speaker.INTERVIEWER, 4, "Graph Transformers")

    assert first == second


def test_fallback_text_depends_on_speaker_role() -> None:
    assert fallback_utterance(Speaker.EXPERT, 1, "X") != fallback_utterance(Speaker.INTERVIEWER, 1, "X")


def test_expert_fallback_can_reference_topic() -> None:
    text = fallback_utterance(Speaker.EXPERT, 5, "Graph Transformers")

    assert '"Graph Transformers"' in text


def test_fallback_phrases_cycle_with_turn_index() -> None:
    assert fallback_utterance(Speaker.EXPERT, 1, "X") == fallback_utterance(Speaker.EXPERT, 6, "X")
    assert fallback_utterance(Speaker.EXPERT, 1, "X") != fallback_utterance(Speaker.EXPERT, 3, "X")


def test_blank_topic_uses_generic_label() -> None:
    assert "this paper" in fallback_utterance(Speaker.EXPERT, 0, "")

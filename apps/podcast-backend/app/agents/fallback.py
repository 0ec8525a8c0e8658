from app.services.conversation_models import Speaker

_EXPERT_FALLBACKS = (
    'This research on "{topic}" presents some fascinating insights into the field.',
    "The methodology described in this paper opens up new possibilities for future research.",
    "What's particularly interesting about this work is how it builds on previous findings.",
    "The implications of this research could be quite significant for the scientific community.",
    "This paper demonstrates innovative approaches that could influence future studies.",
)

_INTERVIEWER_FALLBACKS = (
    "That sounds really interesting! Can you tell our listeners more about the practical applications?",
    "What makes this research particularly groundbreaking in your opinion?",
    "How do you think this will impact the broader field?",
    "What were the key challenges the researchers had to overcome?",
    "This is fascinating! What should our audience know about the methodology?",
)


def fallback_utterance(speaker: Speaker, turn_index: int, topic_label: str) -> str:
    """Canned line used when the turn source gives up. Same inputs, same text."""

    phrases = _EXPERT_FALLBACKS if speaker is Speaker.EXPERT else _INTERVIEWER_FALLBACKS
    return phrases[turn_index % len(phrases)].format(topic=topic_label or "this paper")

from __future__ import annotations

from collections.abc import Sequence

from app.services.conversation_models import SessionContext, Speaker, Utterance

_EXPERT_SYSTEM_PROMPT = """You are {speaker}, co-host of "{show}". You are a research scientist who explains complex research clearly.

Rules:
- Keep responses under 150 words and conversational
- Be knowledgeable but accessible
- Engage naturally with {other}
- Focus on the key technical insights
- Don't repeat information already discussed

Current paper: "{title}"
"""

_INTERVIEWER_SYSTEM_PROMPT = """You are {speaker}, co-host of "{show}". You are a deeply curious interviewer who asks clarifying questions that help the audience understand.

Rules:
- Keep responses under 100 words
- Ask insightful questions
- Show genuine curiosity
- Help bridge technical concepts for a general audience
- Don't repeat questions already asked

Current paper: "{title}"
"""


def system_prompt(speaker: Speaker, context: SessionContext, show_name: str) -> str:
    template = _EXPERT_SYSTEM_PROMPT if speaker is Speaker.EXPERT else _INTERVIEWER_SYSTEM_PROMPT
    return template.format(speaker=speaker.value, other=speaker.other.value, show=show_name, title=context.paper_title)


def turn_prompt(speaker: Speaker, turn_index: int, context: SessionContext, show_name: str) -> str:
    title = context.paper_title
    if speaker is Speaker.EXPERT:
        if turn_index == 1:
            return (
                f'Welcome listeners to {show_name}, Episode {context.episode}! Introduce the paper "{title}" '
                "with enthusiasm and explain why this research caught your attention."
            )
        return (
            f'Continue discussing "{title}". Share technical insights, methodologies, or implications '
            "that would interest our audience."
        )
    if turn_index == 2:
        return (
            f'Ask {speaker.other.value} a thoughtful follow-up question about the paper "{title}" that will help '
            "listeners understand the research better."
        )
    return "Ask an engaging question about the practical applications, limitations, or future directions of this research."


def build_messages(
    speaker: Speaker,
    turn_index: int,
    context: SessionContext,
    history: Sequence[Utterance],
    show_name: str,
) -> list[dict[str, str]]:
    """Chat-completion messages where the speaking host's own lines are ``assistant``."""

    messages = [{"role": "system", "content": system_prompt(speaker, context, show_name)}]
    for utterance in history:
        role = "assistant" if utterance.speaker is speaker else "user"
        messages.append({"role": role, "content": utterance.text})
    messages.append({"role": "user", "content": turn_prompt(speaker, turn_index, context, show_name)})
    return messages

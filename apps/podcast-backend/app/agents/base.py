from collections.abc import Sequence
from typing import Protocol

from app.services.conversation_models import SessionContext, Speaker, Utterance


class TurnSource(Protocol):
    """Contract for text providers that produce one host utterance per call."""

    async def generate_turn(self, speaker: Speaker, context: SessionContext, history: Sequence[Utterance]) -> str:
        """Return the next line for ``speaker`` given the running dialogue ``history``.

        Raises ``ProviderError`` on transport/provider failure and ``EmptyResponseError``
        when the provider answers without usable text.
        """

from __future__ import annotations

import asyncio
import random
from typing import Protocol


class PacingStrategy(Protocol):
    """Delays that make the conversation feel live. Not part of the protocol contract."""

    async def typing(self) -> None:
        """Pause after a host starts typing."""

    async def between_turns(self) -> None:
        """Pause after a message before the next host starts typing."""


class NoPacing(PacingStrategy):
    async def typing(self) -> None:
        return None

    async def between_turns(self) -> None:
        return None


class RandomPacing(PacingStrategy):
    def __init__(
        self,
        *,
        typing_min_seconds: float = 1.5,
        typing_max_seconds: float = 2.5,
        between_min_seconds: float = 0.3,
        between_max_seconds: float = 2.5,
        rng: random.Random | None = None,
    ) -> None:
        self._typing = (typing_min_seconds, max(typing_min_seconds, typing_max_seconds))
        self._between = (between_min_seconds, max(between_min_seconds, between_max_seconds))
        self._rng = rng or random.Random()

    async def typing(self) -> None:
        await asyncio.sleep(self._rng.uniform(*self._typing))

    async def between_turns(self) -> None:
        await asyncio.sleep(self._rng.uniform(*self._between))

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff shared by provider calls and client reconnects."""

    max_attempts: int = 3
    base_delay: float = 2.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed ``attempt`` (1-based) before the next one."""

        if attempt < 1:
            raise ValueError("attempt numbers start at 1")
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def allows_retry_after(self, attempt: int) -> bool:
        return attempt < self.max_attempts


def is_retryable_status(status_code: int) -> bool:
    """Rate limiting and server-side failures are worth another attempt; other statuses are final."""

    return status_code == 429 or status_code >= 500

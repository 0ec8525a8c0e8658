from __future__ import annotations

from dataclasses import dataclass


class ProviderConfigurationError(Exception):
    """Provider credentials or settings are missing; raised before streaming."""


class PaperLookupError(Exception):
    def __init__(self, paper_id: str, message: str) -> None:
        super().__init__(message)
        self.paper_id = paper_id
        self.message = message


class PaperNotFoundError(PaperLookupError):
    def __init__(self, paper_id: str) -> None:
        super().__init__(paper_id, f"Paper not found: {paper_id}")


class PaperStateError(PaperLookupError):
    def __init__(self, paper_id: str, status: str) -> None:
        super().__init__(paper_id, f"Paper status is {status}, expected SELECTED")
        self.status = status


@dataclass(eq=False)
class ProviderError(Exception):
    status_code: int
    message: str
    retryable: bool = False

    def __str__(self) -> str:
        return f"provider error {self.status_code}: {self.message}"


class EmptyResponseError(ProviderError):
    def __init__(self, message: str = "provider returned no usable content") -> None:
        super().__init__(status_code=502, message=message, retryable=False)


class EventEncodingError(ValueError):
    """Raised when a conversation event cannot be serialized into a frame."""


class TransportWriteError(Exception):
    """The response channel no longer accepts frames."""

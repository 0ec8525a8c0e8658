from __future__ import annotations


class FrameParseError(ValueError):
    """A single SSE frame could not be decoded. The stream itself continues."""


class SessionAlreadyActiveError(RuntimeError):
    """A conversation is already connecting, connected or retrying on this client."""


class ConnectionFailedError(Exception):
    """Consumer-side network or HTTP failure while opening or reading the stream."""

    def __init__(self, message: str, *, retryable: bool, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.status_code = status_code


class IncompleteStreamError(ConnectionFailedError):
    def __init__(self) -> None:
        super().__init__("stream closed without completion", retryable=True)


class HeartbeatTimeoutError(ConnectionFailedError):
    def __init__(self, threshold_seconds: float) -> None:
        super().__init__(f"no data received for {threshold_seconds:g}s; connection timed out", retryable=False)
        self.threshold_seconds = threshold_seconds


class RetriesExhaustedError(ConnectionFailedError):
    def __init__(self, attempts: int, last_error: ConnectionFailedError) -> None:
        super().__init__(
            f"connection failed after {attempts} attempts: {last_error.message}",
            retryable=False,
            status_code=last_error.status_code,
        )
        self.attempts = attempts
        self.last_error = last_error


class ServerStreamError(Exception):
    """The server ended the conversation with an explicit error event."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

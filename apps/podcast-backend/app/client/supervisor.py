from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import StrEnum
import json
import logging
import time
import uuid

import httpx

from app.client.errors import (
    ConnectionFailedError,
    HeartbeatTimeoutError,
    IncompleteStreamError,
    RetriesExhaustedError,
    ServerStreamError,
    SessionAlreadyActiveError,
)
from app.client.frame_parser import SSEFrameParser
from app.client.session import ConversationSession, PreviewRequest
from app.core.retry import RetryPolicy, is_retryable_status
from app.services.conversation_stream import ConversationEvent

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RETRYING = "retrying"
    ERROR = "error"
    DISCONNECTED = "disconnected"


ACTIVE_STATES = frozenset({ConnectionState.CONNECTING, ConnectionState.CONNECTED, ConnectionState.RETRYING})

_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.IDLE: frozenset({ConnectionState.CONNECTING, ConnectionState.DISCONNECTED}),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.CONNECTED, ConnectionState.RETRYING, ConnectionState.ERROR, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.CONNECTED: frozenset(
        {ConnectionState.DISCONNECTED, ConnectionState.RETRYING, ConnectionState.ERROR}
    ),
    ConnectionState.RETRYING: frozenset({ConnectionState.CONNECTING, ConnectionState.ERROR, ConnectionState.DISCONNECTED}),
    ConnectionState.ERROR: frozenset({ConnectionState.CONNECTING, ConnectionState.DISCONNECTED}),
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
}

StateListener = Callable[[ConnectionState, ConnectionState], None]
EventListener = Callable[[ConversationEvent], None]


def _error_detail(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text or "no response body"
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return text


class ConnectionSupervisor:
    """Owns the consuming side of one live conversation.

    ``idle -> connecting -> connected -> disconnected`` on the happy path. Retryable
    failures go through ``retrying`` with exponential backoff, up to the policy's
    attempt bound. Terminal failures and heartbeat timeouts end in ``error``.
    ``cancel()`` moves any state to ``disconnected`` and tears down the read and
    every pending timer together, since they all live in the one supervising task.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        path: str = "/api/podcast/preview",
        retry_policy: RetryPolicy | None = None,
        heartbeat_interval_seconds: float = 30.0,
        heartbeat_timeout_multiplier: float = 2.0,
        request_timeout_seconds: float = 60.0,
        on_state_change: StateListener | None = None,
        on_event: EventListener | None = None,
    ) -> None:
        self._http = http_client
        self._path = path
        self._retry_policy = retry_policy or RetryPolicy()
        self._heartbeat_threshold = heartbeat_interval_seconds * heartbeat_timeout_multiplier
        self._request_timeout = request_timeout_seconds
        self._on_state_change = on_state_change
        self._on_event = on_event

        self._state = ConnectionState.IDLE
        self._session: ConversationSession | None = None
        self._task: asyncio.Task[ConversationSession] | None = None
        self._attempts = 0
        self._last_error: Exception | None = None
        self._last_activity: float | None = None
        self._request_id: str | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def session(self) -> ConversationSession | None:
        return self._session

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def last_activity(self) -> float | None:
        """Monotonic time of the most recently received chunk."""

        return self._last_activity

    @property
    def heartbeat_threshold_seconds(self) -> float:
        return self._heartbeat_threshold

    def start(self, request: PreviewRequest) -> asyncio.Task[ConversationSession]:
        """Begin a session in the background. Rejects a second concurrent session."""

        if self._state in ACTIVE_STATES or (self._task is not None and not self._task.done()):
            raise SessionAlreadyActiveError(f"a conversation is already {self._state.value}")

        self._session = ConversationSession(request)
        self._attempts = 0
        self._last_error = None
        self._last_activity = None
        self._request_id = str(uuid.uuid4())
        self._transition(ConnectionState.CONNECTING)
        self._task = asyncio.create_task(self._supervise(self._session), name=f"podcast-preview-{request.paper_id}")
        return self._task

    async def run(self, request: PreviewRequest) -> ConversationSession:
        """Start a session and wait for its terminal outcome."""

        return await self.start(request)

    async def cancel(self) -> None:
        """Stop reading, drop pending retry/heartbeat timers and mark the session disconnected."""

        task = self._task
        if task is not None and not task.done():
            logger.info("cancelling live conversation", extra={"request_id": self._request_id})
            task.cancel()
            await asyncio.wait([task])
        if task is not None and task.done() and not task.cancelled() and task.exception() is not None:
            logger.debug("conversation task had already failed", extra={"error": str(task.exception())})

        if self._session is not None and not self._session.terminal and self._session.error_kind is None:
            self._session.fail("cancelled", "conversation stopped")
        if self._state is not ConnectionState.DISCONNECTED:
            self._transition(ConnectionState.DISCONNECTED)

    async def _supervise(self, session: ConversationSession) -> ConversationSession:
        while True:
            self._attempts += 1
            if self._state is not ConnectionState.CONNECTING:
                self._transition(ConnectionState.CONNECTING)
            try:
                await self._stream_once(session)
            except ConnectionFailedError as exc:
                self._last_error = exc
                await self._handle_failure(session, exc)
                continue

            if session.error_kind == "server_error":
                error = ServerStreamError(session.error_message or "Server error occurred")
                self._last_error = error
                self._transition(ConnectionState.DISCONNECTED)
                raise error

            self._transition(ConnectionState.DISCONNECTED)
            return session

    async def _handle_failure(self, session: ConversationSession, exc: ConnectionFailedError) -> None:
        log_extra = {"request_id": self._request_id, "attempt": self._attempts, "reason": exc.message}
        if isinstance(exc, HeartbeatTimeoutError):
            logger.warning("heartbeat timeout detected", extra=log_extra)
            session.fail("heartbeat_timeout", exc.message)
            self._transition(ConnectionState.ERROR)
            raise exc

        if not exc.retryable:
            logger.error("connection failed", extra={**log_extra, "status_code": exc.status_code})
            session.fail("connection", exc.message)
            self._transition(ConnectionState.ERROR)
            raise exc

        if not self._retry_policy.allows_retry_after(self._attempts):
            exhausted = RetriesExhaustedError(self._attempts, exc)
            self._last_error = exhausted
            logger.error("max retries exceeded", extra=log_extra)
            session.fail("incomplete_stream" if isinstance(exc, IncompleteStreamError) else "connection", exhausted.message)
            self._transition(ConnectionState.ERROR)
            raise exhausted

        delay = self._retry_policy.delay_for(self._attempts)
        logger.info(
            "scheduling retry",
            extra={**log_extra, "max_attempts": self._retry_policy.max_attempts, "delay_seconds": delay},
        )
        self._transition(ConnectionState.RETRYING)
        await asyncio.sleep(delay)

    async def _stream_once(self, session: ConversationSession) -> None:
        headers = {
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
            "X-Request-ID": self._request_id or str(uuid.uuid4()),
        }
        try:
            async with self._http.stream(
                "POST",
                self._path,
                json=session.request.to_payload(),
                headers=headers,
                timeout=httpx.Timeout(self._request_timeout),
            ) as response:
                if response.status_code >= 400:
                    detail = _error_detail(await response.aread())
                    raise ConnectionFailedError(
                        f"Server error: {response.status_code} - {detail}",
                        retryable=is_retryable_status(response.status_code),
                        status_code=response.status_code,
                    )

                self._transition(ConnectionState.CONNECTED)
                await self._consume(response, session)
        except httpx.TransportError as exc:
            raise ConnectionFailedError(f"network error: {exc.__class__.__name__}: {exc}", retryable=True) from exc

    async def _consume(self, response: httpx.Response, session: ConversationSession) -> None:
        parser = SSEFrameParser()
        loop = asyncio.get_running_loop()
        self._touch()
        try:
            async with asyncio.timeout(self._heartbeat_threshold) as deadline:
                async for chunk in response.aiter_bytes():
                    self._touch()
                    deadline.reschedule(loop.time() + self._heartbeat_threshold)
                    for event in parser.feed(chunk):
                        terminal = session.dispatch(event)
                        if self._on_event is not None:
                            self._on_event(event)
                        if terminal:
                            return
        except TimeoutError as exc:
            if deadline.expired():
                raise HeartbeatTimeoutError(self._heartbeat_threshold) from exc
            raise

        parser.finish()
        raise IncompleteStreamError()

    def _touch(self) -> None:
        self._last_activity = time.monotonic()

    def _transition(self, new_state: ConnectionState) -> None:
        old_state = self._state
        if new_state not in _TRANSITIONS[old_state]:
            raise RuntimeError(f"invalid connection state transition {old_state.value} -> {new_state.value}")
        self._state = new_state
        logger.debug("connection state changed", extra={"from_state": old_state.value, "to_state": new_state.value})
        if self._on_state_change is not None:
            self._on_state_change(old_state, new_state)

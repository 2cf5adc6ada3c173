"""
Error taxonomy for streaming chat calls.

Fatal errors reject the call:
- Request validation (before any network I/O)
- Transport failures and non-success HTTP statuses
- Unreadable response bodies, timeouts and cancellation

Non-fatal errors are reported and recovered locally:
- Malformed frames (dropped by the parser)
- Upstream-reported ``error`` events (surfaced via ``on_error``)
"""

from __future__ import annotations

from typing import Any


class ChatClientError(Exception):
    """Base chat client error with response context."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}


class RequestValidationError(ChatClientError):
    """Request rejected before any network activity."""
    pass


class MissingApiKeyError(RequestValidationError):
    """API key is empty or whitespace."""
    pass


class EmptyQueryError(RequestValidationError):
    """Query is empty or whitespace."""
    pass


class InvalidCallbackError(RequestValidationError):
    """``on_message`` is not callable."""
    pass


class TransportError(ChatClientError):
    """Non-success HTTP status or network failure."""
    pass


class StreamUnavailableError(ChatClientError):
    """Response body cannot be read incrementally."""
    pass


class FrameDecodeError(ChatClientError):
    """A ``data:`` frame did not decode into an event object."""

    def __init__(self, message: str, raw_data: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data


class UpstreamError(ChatClientError):
    """Error reported by the server inside the event stream."""

    def __init__(
        self,
        message: str,
        *,
        code: str | int | None = None,
        event: Any = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.code = code
        self.event = event


class StreamingError(ChatClientError):
    """Unexpected failure inside the read loop."""
    pass


class StreamTimeoutError(StreamingError):
    """Configured network timeout elapsed."""
    pass


class StreamCancelledError(ChatClientError):
    """Call aborted through its cancellation signal."""
    pass

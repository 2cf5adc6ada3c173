"""
Streaming chat protocol client.

This package provides:
- Typed request, callback and event models
- Incremental SSE decoding with malformed-frame recovery
- A single-call streaming client with cancellation support
- A structured error taxonomy
"""

from __future__ import annotations

from .client import StreamingChatClient, send_stream_message
from .exceptions import (
    ChatClientError,
    EmptyQueryError,
    FrameDecodeError,
    InvalidCallbackError,
    MissingApiKeyError,
    RequestValidationError,
    StreamCancelledError,
    StreamingError,
    StreamTimeoutError,
    StreamUnavailableError,
    TransportError,
    UpstreamError,
)
from .models import (
    AgentThoughtEvent,
    BaseEvent,
    ChatEvent,
    ChatRequest,
    ChatResult,
    ErrorEvent,
    EventType,
    GenericEvent,
    MessageEndEvent,
    MessageEvent,
    StreamCallbacks,
    parse_event,
)

__all__ = [
    # Events
    "AgentThoughtEvent",
    "BaseEvent",
    # Exceptions
    "ChatClientError",
    "ChatEvent",
    # Request / result
    "ChatRequest",
    "ChatResult",
    "EmptyQueryError",
    "ErrorEvent",
    "EventType",
    "FrameDecodeError",
    "GenericEvent",
    "InvalidCallbackError",
    "MessageEndEvent",
    "MessageEvent",
    "MissingApiKeyError",
    "RequestValidationError",
    "StreamCallbacks",
    "StreamCancelledError",
    "StreamTimeoutError",
    "StreamUnavailableError",
    # Client
    "StreamingChatClient",
    "StreamingError",
    "TransportError",
    "UpstreamError",
    "parse_event",
    "send_stream_message",
]

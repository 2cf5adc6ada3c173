"""chatstream: a streaming chat protocol client."""

from __future__ import annotations

from .chat import (
    ChatRequest,
    ChatResult,
    StreamCallbacks,
    StreamingChatClient,
    send_stream_message,
)
from .config import ClientConfig, Configuration

__all__ = [
    "ChatRequest",
    "ChatResult",
    "ClientConfig",
    "Configuration",
    "StreamCallbacks",
    "StreamingChatClient",
    "send_stream_message",
]

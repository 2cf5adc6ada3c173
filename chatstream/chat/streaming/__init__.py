"""
Incremental Server-Sent-Events framing for chat streams.

This package contains:
- Incremental UTF-8 decoding across chunk boundaries
- Blank-line frame splitting with a carry-over buffer
- Per-call stream state and parser statistics
"""

from __future__ import annotations

from .models import FrameParserStats, RawFrame, StreamState
from .parser import SSEFrameParser

__all__ = ["FrameParserStats", "RawFrame", "SSEFrameParser", "StreamState"]

"""
Streaming-specific dataclasses for frame parsing and per-call state.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class RawFrame:
    """A single ``data:`` frame with its prefix stripped, still JSON text."""
    data: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class StreamState:
    """Mutable state owned by exactly one in-flight call.

    ``buffer`` holds decoded text that has not yet formed a complete frame.
    """
    buffer: str = ""
    full_response: str = ""
    active: bool = True
    frames_seen: int = 0
    conversation_id: str = ""
    message_id: str | None = None
    task_id: str | None = None

    def append_answer(self, fragment: str) -> None:
        """Grow the accumulated answer. It never shrinks within a call."""
        self.full_response += fragment

    def close(self) -> None:
        self.active = False


@dataclass
class FrameParserStats:
    """Counters for frame parsing diagnostics."""
    total_frames: int = 0
    dispatched_frames: int = 0
    malformed_frames: int = 0
    ignored_frames: int = 0
    bytes_received: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)

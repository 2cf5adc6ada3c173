"""
Incremental SSE framer for chat event streams.

Bytes arrive in arbitrary network chunks. They are decoded with an
incremental UTF-8 decoder, buffered, and split on blank lines into frames.
Only the trailing partial piece is kept in the buffer between reads.
"""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncGenerator, AsyncIterable

import structlog

from ..exceptions import FrameDecodeError
from ..models import ChatEvent, parse_event
from .models import FrameParserStats, RawFrame, StreamState

FRAME_SEPARATOR = "\n\n"
DATA_PREFIX = "data:"
MAX_LOGGED_FRAME = 200

logger = structlog.get_logger(__name__)


class SSEFrameParser:
    """Turns a chunked byte stream into decoded chat events."""

    def __init__(self, state: StreamState | None = None, encoding: str = "utf-8"):
        self.state = state if state is not None else StreamState()
        self.encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self.stats = FrameParserStats()

    def feed(self, chunk: bytes) -> list[RawFrame]:
        """Consume one network chunk and return the frames it completed."""
        self.stats.bytes_received += len(chunk)
        self.state.buffer += self._decoder.decode(chunk)
        return self._drain()

    def finish(self) -> list[RawFrame]:
        """Flush the decoder at end of stream.

        A trailing frame without its blank-line terminator is discarded.
        """
        self.state.buffer += self._decoder.decode(b"", final=True)
        frames = self._drain()

        if self.state.buffer.strip():
            logger.debug(
                "Discarding unterminated frame at end of stream",
                size=len(self.state.buffer),
            )
        self.state.buffer = ""
        return frames

    def _drain(self) -> list[RawFrame]:
        *complete, self.state.buffer = self.state.buffer.split(FRAME_SEPARATOR)

        frames: list[RawFrame] = []
        for raw in complete:
            self.stats.total_frames += 1
            if not raw.startswith(DATA_PREFIX):
                self.stats.ignored_frames += 1
                continue
            frames.append(RawFrame(data=raw[len(DATA_PREFIX):].strip()))
        return frames

    def decode(self, frame: RawFrame) -> ChatEvent | None:
        """Decode a frame into an event, or drop it if malformed."""
        try:
            event = parse_event(json.loads(frame.data))
        except (json.JSONDecodeError, FrameDecodeError) as e:
            self.stats.malformed_frames += 1
            logger.warning(
                "Dropping malformed frame",
                error=str(e),
                raw_data=frame.data[:MAX_LOGGED_FRAME],
            )
            return None

        self.stats.dispatched_frames += 1
        return event

    async def iter_events(
        self, byte_chunks: AsyncIterable[bytes]
    ) -> AsyncGenerator[ChatEvent]:
        """Yield events in stream order as chunks arrive."""
        async for chunk in byte_chunks:
            for frame in self.feed(chunk):
                event = self.decode(frame)
                if event is not None:
                    yield event

        for frame in self.finish():
            event = self.decode(frame)
            if event is not None:
                yield event

    def get_stats(self) -> dict[str, int]:
        """Get parsing statistics for monitoring."""
        return self.stats.as_dict()

    def reset(self) -> None:
        """Reset buffer, decoder and counters for a new stream."""
        self.state = StreamState()
        self._decoder = codecs.getincrementaldecoder(self.encoding)(errors="replace")
        self.stats = FrameParserStats()

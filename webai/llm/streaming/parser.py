"""
SSE parsing and chunk accumulation for provider streams.

`SSEBuffer` is shared with the client-side stream consumer: both sides
need to rebuild whole `data:` lines from arbitrarily split network reads.
"""

from __future__ import annotations

import json
import time
from collections.abc import AsyncGenerator, AsyncIterable

import httpx

from ..exceptions import StreamingError
from .models import (
    AccumulatorState,
    RawSSEChunk,
    SSEEventType,
    StreamChunk,
    StreamChunkType,
    StreamingStats,
)

DATA_PREFIX = "data:"
DONE_MARKER = "[DONE]"


class SSEBuffer:
    """Reassembles complete `data:` payloads from partial text reads."""

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, text: str) -> list[str]:
        """
        Add a piece of response text and return the payloads of all lines
        that are now complete. A trailing partial line stays buffered.
        """
        self._pending += text
        *lines, self._pending = self._pending.split("\n")
        return [
            payload for payload in (self._payload(line) for line in lines)
            if payload is not None
        ]

    def flush(self) -> list[str]:
        """Return the payload of a final unterminated line, if any."""
        line, self._pending = self._pending, ""
        payload = self._payload(line)
        return [payload] if payload is not None else []

    @property
    def pending(self) -> str:
        return self._pending

    @staticmethod
    def _payload(line: str) -> str | None:
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            return None
        return line[len(DATA_PREFIX):].removeprefix(" ")


class StreamingParser:
    """
    SSE parser with error recovery and statistics.

    `stats` accumulate over every stream the instance parses. `LLMClient`
    keeps one parser for all requests, so its counters are process-wide
    totals; per-stream figures come from `ChunkAccumulator`.
    """

    def __init__(self, enable_recovery: bool = True):
        self.enable_recovery = enable_recovery
        self.stats = {
            'total_chunks': 0,
            'error_chunks': 0,
            'recovery_attempts': 0,
        }

    async def parse_sse_stream(
        self,
        text_stream: AsyncIterable[str],
    ) -> AsyncGenerator[RawSSEChunk]:
        """
        Parse an SSE text stream into raw chunks.

        Stops after the `[DONE]` marker. Malformed events become ERROR
        chunks when recovery is enabled and raise StreamingError otherwise.
        Transport failures are reported as a final ERROR chunk.
        """
        buffer = SSEBuffer()

        try:
            async for text in text_stream:
                for data in buffer.feed(text):
                    chunk = self._parse_data(data)
                    self.stats['total_chunks'] += 1
                    if chunk.event_type == SSEEventType.ERROR:
                        self.stats['error_chunks'] += 1
                        if not self.enable_recovery:
                            raise StreamingError(f"SSE parse error: {chunk.error}")
                        self.stats['recovery_attempts'] += 1
                    yield chunk
                    if chunk.event_type == SSEEventType.COMPLETION:
                        return

            for data in buffer.flush():
                yield self._parse_data(data)

        except httpx.StreamError as e:
            self.stats['error_chunks'] += 1
            yield RawSSEChunk(
                event_type=SSEEventType.ERROR,
                data=None,
                raw_data="",
                error=f"Stream error: {e}"
            )

        except httpx.TransportError as e:
            self.stats['error_chunks'] += 1
            yield RawSSEChunk(
                event_type=SSEEventType.ERROR,
                data=None,
                raw_data="",
                error=f"Transport error: {e}"
            )

    def _parse_data(self, data: str) -> RawSSEChunk:
        """Parse the payload of a single `data:` line."""
        timestamp = time.time()
        stripped = data.strip()

        if stripped == DONE_MARKER:
            return RawSSEChunk(
                event_type=SSEEventType.COMPLETION,
                data=None,
                raw_data=DONE_MARKER,
                timestamp=timestamp
            )

        if stripped in ("", "ping", "heartbeat"):
            return RawSSEChunk(
                event_type=SSEEventType.HEARTBEAT,
                data=None,
                raw_data=data,
                timestamp=timestamp
            )

        try:
            parsed = json.loads(data)
        except json.JSONDecodeError as e:
            return RawSSEChunk(
                event_type=SSEEventType.ERROR,
                data=None,
                raw_data=data,
                error=f"JSON decode error: {e}",
                timestamp=timestamp
            )

        if isinstance(parsed, dict) and "error" in parsed:
            error = parsed["error"]
            message = error.get("message") if isinstance(error, dict) else error
            return RawSSEChunk(
                event_type=SSEEventType.ERROR,
                data=parsed,
                raw_data=data,
                error=f"Provider error: {message}",
                timestamp=timestamp
            )

        return RawSSEChunk(
            event_type=SSEEventType.CHUNK,
            data=parsed if isinstance(parsed, dict) else None,
            raw_data=data,
            timestamp=timestamp
        )

    def get_stats(self) -> dict[str, int]:
        """Get streaming statistics for monitoring."""
        return self.stats.copy()


class ChunkAccumulator:
    """Turns raw provider chunks into typed content deltas."""

    def __init__(self) -> None:
        self.state = AccumulatorState()
        self._error_chunks = 0

    def process_chunk(self, raw_chunk: RawSSEChunk) -> StreamChunk | None:
        """Process a raw SSE chunk; heartbeats and empty deltas yield None."""
        self.state.update_timing(raw_chunk.timestamp)

        if raw_chunk.event_type == SSEEventType.COMPLETION:
            return StreamChunk(
                chunk_type=StreamChunkType.COMPLETION,
                content=None,
                accumulated_content=self.state.content,
                finish_reason="stop",
            )

        if raw_chunk.event_type == SSEEventType.ERROR:
            self._error_chunks += 1
            return StreamChunk(
                chunk_type=StreamChunkType.ERROR,
                content=None,
                accumulated_content=self.state.content,
                error=raw_chunk.error,
            )

        if raw_chunk.event_type == SSEEventType.HEARTBEAT:
            return None

        if not raw_chunk.data or not raw_chunk.data.get("choices"):
            return None

        choice = raw_chunk.data["choices"][0]
        delta = choice.get("delta") or {}

        if content := delta.get("content"):
            self.state.content_parts.append(content)
            return StreamChunk(
                chunk_type=StreamChunkType.CONTENT,
                content=content,
                accumulated_content=self.state.content,
            )

        if finish_reason := choice.get("finish_reason"):
            return StreamChunk(
                chunk_type=StreamChunkType.COMPLETION,
                content=None,
                accumulated_content=self.state.content,
                finish_reason=finish_reason,
            )

        return None

    def get_streaming_stats(self) -> StreamingStats:
        content = self.state.content
        return StreamingStats(
            total_chunks=self.state.chunk_count,
            content_chunks=len(self.state.content_parts),
            error_chunks=self._error_chunks,
            total_duration=self.state.streaming_duration,
            content_length=len(content),
        )

    def reset(self) -> None:
        """Reset accumulator state for a new stream."""
        self.state = AccumulatorState()
        self._error_chunks = 0

"""
Streaming-specific dataclasses.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StreamChunkType(Enum):
    """Types of streaming chunks."""
    CONTENT = "content"
    COMPLETION = "completion"
    ERROR = "error"


class SSEEventType(Enum):
    """Server-Sent Event types."""
    CHUNK = "chunk"
    COMPLETION = "completion"
    ERROR = "error"
    HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class RawSSEChunk:
    """Raw SSE chunk from an HTTP response body."""
    event_type: SSEEventType
    data: dict[str, Any] | None
    raw_data: str
    error: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class StreamChunk:
    """Processed streaming chunk with accumulated state."""
    chunk_type: StreamChunkType
    content: str | None
    accumulated_content: str
    finish_reason: str | None = None
    error: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class AccumulatorState:
    """Mutable state for chunk accumulation."""
    content_parts: list[str] = field(default_factory=list)
    chunk_count: int = 0
    first_chunk_time: float | None = None
    last_chunk_time: float | None = None

    @property
    def content(self) -> str:
        return "".join(self.content_parts)

    def update_timing(self, timestamp: float) -> None:
        """Update timing information for latency tracking."""
        if self.first_chunk_time is None:
            self.first_chunk_time = timestamp
        self.last_chunk_time = timestamp
        self.chunk_count += 1

    @property
    def streaming_duration(self) -> float:
        """Calculate total streaming duration."""
        if self.first_chunk_time is None or self.last_chunk_time is None:
            return 0.0
        return self.last_chunk_time - self.first_chunk_time


@dataclass(frozen=True)
class StreamingStats:
    """Statistics for streaming performance analysis."""
    total_chunks: int
    content_chunks: int
    error_chunks: int
    total_duration: float
    content_length: int

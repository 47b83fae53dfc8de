"""
Client-side consumer for WebAI event streams.

Network reads can split an event anywhere, so text goes through the same
`SSEBuffer` the server uses for provider streams; only whole `data:` lines
are interpreted. A line that does not decode is skipped. What gets reported
is a terminal `error` event, or a stream that ends without any terminal
event.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterable
from dataclasses import dataclass, field

from webai.generation.events import (
    ChunkEvent,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TerminalEvent,
    decode_event,
    is_terminal,
)
from webai.llm.streaming import DONE_MARKER, SSEBuffer

logger = logging.getLogger(__name__)

INCOMPLETE_STREAM = "Stream ended before the response was complete"


@dataclass
class ConsumeResult:
    """Everything a finished stream produced."""
    text: str = ""
    terminal: TerminalEvent | None = None
    chunks: int = 0
    skipped_lines: int = 0
    events: list[StreamEvent] = field(default_factory=list)

    @property
    def error(self) -> str | None:
        if isinstance(self.terminal, ErrorEvent):
            return self.terminal.error
        if self.terminal is None:
            return INCOMPLETE_STREAM
        return None

    @property
    def done(self) -> DoneEvent | None:
        return self.terminal if isinstance(self.terminal, DoneEvent) else None


class StreamConsumer:
    """Turns raw response text into events, stopping at the `[DONE]` sentinel."""

    def __init__(self) -> None:
        self.buffer = SSEBuffer()
        self.skipped_lines = 0
        self.finished = False

    def feed(self, text: str) -> list[StreamEvent]:
        """Decode every event completed by `text`."""
        return self._decode(self.buffer.feed(text))

    def flush(self) -> list[StreamEvent]:
        return self._decode(self.buffer.flush())

    def _decode(self, payloads: list[str]) -> list[StreamEvent]:
        events = []
        for payload in payloads:
            if self.finished:
                break
            if payload.strip() == DONE_MARKER:
                self.finished = True
                break
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                self.skipped_lines += 1
                logger.debug(f"Skipping undecodable event line ({len(payload)} chars)")
                continue
            event = decode_event(data) if isinstance(data, dict) else None
            if event is None:
                self.skipped_lines += 1
                continue
            events.append(event)
        return events

    async def events(self, text_stream: AsyncIterable[str]) -> AsyncGenerator[StreamEvent]:
        async for text in text_stream:
            for event in self.feed(text):
                yield event
            if self.finished:
                return
        for event in self.flush():
            yield event

    async def consume(self, text_stream: AsyncIterable[str]) -> ConsumeResult:
        """Read a whole stream; events after the first terminal one are ignored."""
        result = ConsumeResult()
        parts: list[str] = []
        async for event in self.events(text_stream):
            if result.terminal is not None:
                continue
            result.events.append(event)
            if isinstance(event, ChunkEvent):
                parts.append(event.chunk)
                result.chunks += 1
            elif isinstance(event, ContentEvent):
                parts.append(event.content)
                result.chunks += 1
            elif is_terminal(event):
                result.terminal = event
        result.text = "".join(parts)
        result.skipped_lines = self.skipped_lines
        return result

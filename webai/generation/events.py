"""
Server-sent event shapes for generation, refinement and chat streams.

Every stream is a series of `data: <json>` frames ending with the
`data: [DONE]` sentinel.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from webai.llm.streaming import DONE_MARKER

SSE_DONE = f"data: {DONE_MARKER}\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@dataclass(frozen=True)
class ChunkEvent:
    """A raw fragment of model output, forwarded verbatim."""
    chunk: str

    def to_dict(self) -> dict[str, Any]:
        return {"chunk": self.chunk}


@dataclass(frozen=True)
class ContentEvent:
    """A chat reply fragment."""
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content}


@dataclass(frozen=True)
class DoneEvent:
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"done": True, **self.payload}


@dataclass(frozen=True)
class ErrorEvent:
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}


StreamEvent = ChunkEvent | ContentEvent | DoneEvent | ErrorEvent
TerminalEvent = DoneEvent | ErrorEvent


def is_terminal(event: StreamEvent) -> bool:
    return isinstance(event, DoneEvent | ErrorEvent)


def encode_sse(event: StreamEvent) -> str:
    return f"data: {json.dumps(event.to_dict())}\n\n"


def decode_event(payload: dict[str, Any]) -> StreamEvent | None:
    """Map a decoded `data:` JSON object back to its event, or None if unknown."""
    if payload.get("done") is True:
        return DoneEvent({k: v for k, v in payload.items() if k != "done"})
    if isinstance(payload.get("error"), str):
        return ErrorEvent(payload["error"])
    if isinstance(payload.get("chunk"), str):
        return ChunkEvent(payload["chunk"])
    if isinstance(payload.get("content"), str):
        return ContentEvent(payload["content"])
    return None

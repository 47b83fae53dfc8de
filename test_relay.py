#!/usr/bin/env python3
"""
Tests for the generation relay.

Covers the stream contract: chunks are forwarded verbatim in order, at most
one terminal event is sent, and the sentinel always closes the stream.
"""

import asyncio
import json

import pytest

from conftest import FakeLLM, split_text, trivia_project
from webai.generation.document import INVALID_FILE_STRUCTURE, PARSE_FAILED
from webai.generation.events import (
    SSE_DONE,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    decode_event,
    encode_sse,
    is_terminal,
)
from webai.generation.prompts import (
    GENERATION_SYSTEM_PROMPT,
    describe_request,
    summarize_files,
)
from webai.generation.relay import STREAM_ERROR, BackgroundStreams, GenerationRelay
from webai.llm.models import MessageRole


def decode_frames(frames: list[str]) -> list:
    """Turn SSE frames back into events; the sentinel becomes the string 'DONE'."""
    events = []
    for frame in frames:
        assert frame.startswith("data: ") and frame.endswith("\n\n")
        payload = frame[len("data: "):-2]
        if payload == "[DONE]":
            events.append("DONE")
        else:
            events.append(decode_event(json.loads(payload)))
    return events


async def collect(frames) -> list[str]:
    return [frame async for frame in frames]


def assert_stream_contract(events: list) -> None:
    assert events[-1] == "DONE"
    assert events.count("DONE") == 1
    terminals = [i for i, e in enumerate(events) if e != "DONE" and is_terminal(e)]
    assert len(terminals) <= 1
    if terminals:
        assert terminals[0] == len(events) - 2


class TestGenerationRelay:
    async def test_chunks_verbatim_then_done(self, settings, trivia_document):
        chunks = split_text(trivia_document, 37)
        llm = FakeLLM(chunks)
        relay = GenerationRelay(llm, settings)

        events = decode_frames(await collect(relay.generate("a trivia quiz bot", None)))

        assert_stream_contract(events)
        forwarded = [e.chunk for e in events if isinstance(e, ChunkEvent)]
        assert forwarded == chunks
        done = events[-2]
        assert isinstance(done, DoneEvent)
        assert done.payload["files"] == trivia_project()["files"]
        assert done.payload["name"] == "Trivia Master"
        assert done.payload["suggested_slug"] == "trivia-master"
        assert "change_summary" not in done.payload

    async def test_empty_fragments_are_not_forwarded(self, settings, trivia_document):
        llm = FakeLLM(["", trivia_document, ""])
        events = decode_frames(
            await collect(GenerationRelay(llm, settings).generate("x", None))
        )
        assert [type(e) for e in events] == [ChunkEvent, DoneEvent, str]

    async def test_malformed_output_yields_error(self, settings):
        llm = FakeLLM(['{"name": "Broken", "files": [', '{"path": "a.py"'])
        events = decode_frames(
            await collect(GenerationRelay(llm, settings).generate("x", None))
        )

        assert_stream_contract(events)
        assert events[-2] == ErrorEvent(PARSE_FAILED)
        assert not any(isinstance(e, DoneEvent) for e in events)
        assert sum(isinstance(e, ChunkEvent) for e in events) == 2

    async def test_missing_files_yields_error(self, settings):
        llm = FakeLLM([json.dumps({"name": "No files", "files": []})])
        events = decode_frames(
            await collect(GenerationRelay(llm, settings).generate("x", None))
        )
        assert events[-2] == ErrorEvent(INVALID_FILE_STRUCTURE)

    async def test_upstream_failure_mid_stream(self, settings, trivia_document):
        llm = FakeLLM(split_text(trivia_document, 50), fail_after=3)
        events = decode_frames(
            await collect(GenerationRelay(llm, settings).generate("x", None))
        )

        assert_stream_contract(events)
        assert sum(isinstance(e, ChunkEvent) for e in events) == 3
        error = events[-2]
        assert isinstance(error, ErrorEvent)
        assert "upstream down" in error.error

    async def test_upstream_failure_before_first_chunk(self, settings):
        llm = FakeLLM([], fail_after=0)
        events = decode_frames(
            await collect(GenerationRelay(llm, settings).generate("x", None))
        )
        assert len(events) == 2
        assert isinstance(events[0], ErrorEvent)

    async def test_refine_metadata_and_change_summary(self, settings):
        output = json.dumps({
            "name": "",
            "change_summary": "Added hints",
            "files": [{"path": "app.py", "content": "v2"}],
        })
        llm = FakeLLM([output])
        relay = GenerationRelay(llm, settings)
        files = [{"path": "app.py", "content": "v1"}]

        events = decode_frames(await collect(
            relay.refine(files, "add hints", "Trivia Master", "Quiz game")
        ))

        done = events[-2]
        assert done.payload["name"] == "Trivia Master"
        assert done.payload["description"] == "Quiz game"
        assert done.payload["change_summary"] == "Added hints"
        assert list(done.payload)[-1] == "files"

        system, user = llm.stream_calls[0]
        assert system.role == MessageRole.SYSTEM
        assert summarize_files(files) in system.content
        assert '"add hints"' in system.content
        assert user.content == "Apply this change to my bot: add hints"

    async def test_generation_prompt(self, settings, trivia_document):
        llm = FakeLLM([trivia_document])
        await collect(GenerationRelay(llm, settings).generate("quiz", "trivia"))

        system, user = llm.stream_calls[0]
        assert system.content == GENERATION_SYSTEM_PROMPT
        assert user.content == describe_request("quiz", "trivia")
        assert user.content.startswith("User's description: quiz")


class SlowLLM:
    """Streams fragments with a pause between them."""

    def __init__(self, chunks: list[str], delay: float = 0.01):
        self.chunks = chunks
        self.delay = delay
        self.finished = asyncio.Event()

    async def stream_text(self, messages, settings):
        for chunk in self.chunks:
            await asyncio.sleep(self.delay)
            yield chunk
        self.finished.set()


class TestBackgroundStreams:
    async def test_upstream_continues_after_client_leaves(self, settings, trivia_document):
        llm = SlowLLM(split_text(trivia_document, 200))
        background = BackgroundStreams()
        frames = GenerationRelay(llm, settings, background).generate("x", None)

        first = await frames.__anext__()
        assert first.startswith('data: {"chunk"')
        await frames.aclose()

        await asyncio.wait_for(llm.finished.wait(), timeout=5)
        await background.join()
        assert background.active == 0

    async def test_producer_crash_becomes_error_event(self):
        async def broken():
            yield ChunkEvent("a")
            raise RuntimeError("boom")

        frames = await collect(BackgroundStreams().open(broken()))
        assert frames == [
            encode_sse(ChunkEvent("a")),
            encode_sse(ErrorEvent(STREAM_ERROR)),
            SSE_DONE,
        ]

    async def test_events_after_terminal_are_dropped(self):
        async def chatty():
            yield ErrorEvent("first")
            yield ChunkEvent("late")
            yield DoneEvent({"files": []})

        frames = await collect(BackgroundStreams().open(chatty()))
        assert frames == [encode_sse(ErrorEvent("first")), SSE_DONE]

    @pytest.mark.parametrize("event,expected", [
        (ChunkEvent("x"), {"chunk": "x"}),
        (ErrorEvent("bad"), {"error": "bad"}),
        (DoneEvent({"files": [1]}), {"done": True, "files": [1]}),
    ])
    def test_wire_shapes(self, event, expected):
        assert json.loads(encode_sse(event)[len("data: "):]) == expected

"""
Generation relay: forwards model output as `chunk` events while it arrives,
then emits exactly one terminal event and the `[DONE]` sentinel.

Upstream consumption runs in a background task that feeds a queue. The
HTTP response only reads from that queue, so a client that disconnects
does not cancel the upstream call; the task drains it server-side.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from typing import Any, Protocol

from webai.generation.document import (
    MetadataDefaults,
    ParsedDocument,
    parse_project_document,
)
from webai.generation.events import (
    SSE_DONE,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    encode_sse,
    is_terminal,
)
from webai.generation.prompts import build_generation_messages, build_refine_messages
from webai.llm.exceptions import LLMError
from webai.llm.models import CompletionSettings, LLMMessage

logger = logging.getLogger(__name__)

STREAM_ERROR = "Stream error"


class TextStreamer(Protocol):
    """Anything that streams completion text deltas (LLMClient in production)."""

    def stream_text(
        self, messages: list[LLMMessage], settings: CompletionSettings
    ) -> AsyncIterator[str]:
        ...


# --------------------------------------------------------------------------- #
# Detached delivery                                                           #
# --------------------------------------------------------------------------- #


class BackgroundStreams:
    """Owns the tasks that drain upstream streams independently of clients."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def open(self, events: AsyncIterator[StreamEvent]) -> AsyncGenerator[str]:
        """
        Start consuming `events` now and return the SSE frames to send.

        The frame generator always ends with the sentinel. If `events` fails
        before producing a terminal event, an error event is sent first.
        """
        queue: asyncio.Queue[str | None] = asyncio.Queue()

        async def pump() -> None:
            terminal_sent = False
            try:
                async for event in events:
                    if terminal_sent:
                        continue
                    queue.put_nowait(encode_sse(event))
                    terminal_sent = is_terminal(event)
            except Exception:
                logger.exception("Event producer failed")
                if not terminal_sent:
                    queue.put_nowait(encode_sse(ErrorEvent(STREAM_ERROR)))
            finally:
                queue.put_nowait(SSE_DONE)
                queue.put_nowait(None)

        task = asyncio.create_task(pump())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        async def frames() -> AsyncGenerator[str]:
            while (frame := await queue.get()) is not None:
                yield frame

        return frames()

    @property
    def active(self) -> int:
        return len(self._tasks)

    async def join(self) -> None:
        """Wait for every in-flight upstream stream to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


# --------------------------------------------------------------------------- #
# Relay                                                                       #
# --------------------------------------------------------------------------- #


class GenerationRelay:
    """
    Relays one code generation or refinement from the model to the client.
    """

    def __init__(
        self,
        llm: TextStreamer,
        settings: CompletionSettings,
        background: BackgroundStreams | None = None,
    ):
        self.llm = llm
        self.settings = settings
        self.background = background or BackgroundStreams()

    async def events(
        self,
        messages: list[LLMMessage],
        defaults: MetadataDefaults,
    ) -> AsyncGenerator[StreamEvent]:
        """
        Yield `chunk` events in arrival order, then one terminal event.
        """
        fragments: list[str] = []
        try:
            async for fragment in self.llm.stream_text(messages, self.settings):
                if not fragment:
                    continue
                fragments.append(fragment)
                yield ChunkEvent(fragment)
        except LLMError as e:
            logger.warning(
                f"Upstream stream failed after {len(fragments)} chunks: {e.message}"
            )
            yield ErrorEvent(e.message)
            return

        result = parse_project_document("".join(fragments), defaults)
        if not isinstance(result, ParsedDocument):
            logger.warning(f"Generation rejected: {result.reason}")
            yield ErrorEvent(result.reason)
            return

        logger.info(
            f"Generated '{result.project.name}' with {len(result.raw_files)} files"
        )
        yield DoneEvent(self._done_payload(result))

    def frames(
        self, messages: list[LLMMessage], defaults: MetadataDefaults
    ) -> AsyncGenerator[str]:
        """SSE frames for the HTTP response, with upstream consumption detached."""
        return self.background.open(self.events(messages, defaults))

    def generate(
        self, description: str | None, template: str | None
    ) -> AsyncGenerator[str]:
        return self.frames(
            build_generation_messages(description, template),
            MetadataDefaults.for_generation(),
        )

    def refine(
        self,
        files: Sequence[dict[str, Any]],
        instruction: str,
        bot_name: str | None = None,
        bot_description: str | None = None,
    ) -> AsyncGenerator[str]:
        return self.frames(
            build_refine_messages(files, instruction, bot_name, bot_description),
            MetadataDefaults.for_refinement(bot_name, bot_description),
        )

    @staticmethod
    def _done_payload(result: ParsedDocument) -> dict[str, Any]:
        project = result.project
        payload: dict[str, Any] = {
            "name": project.name,
            "description": project.description,
            "system_prompt": project.system_prompt,
            "suggested_slug": project.suggested_slug,
        }
        if project.change_summary is not None:
            payload["change_summary"] = project.change_summary
        # Files go out exactly as the model produced them
        payload["files"] = result.raw_files
        return payload

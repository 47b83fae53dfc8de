"""
HTTP client for OpenAI-compatible chat completion APIs.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

import httpx

from .exceptions import ProviderError, RateLimitError, StreamingError
from .models import (
    CompletionSettings,
    LLMMessage,
    LLMRequest,
    LLMResponse,
    ProviderConfig,
    TokenUsage,
)
from .streaming.models import StreamChunkType
from .streaming.parser import ChunkAccumulator, StreamingParser

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_TOO_MANY_REQUESTS = 429


class LLMClient:
    """Async client for `/chat/completions` with streaming support."""

    def __init__(self, config: ProviderConfig) -> None:
        if not config.api_key:
            raise ValueError("LLM api_key must be provided")

        self.config = config
        self.provider_type = config.provider
        self.client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Authorization": f"Bearer {config.api_key}"},
            timeout=httpx.Timeout(
                connect=config.connect_timeout,
                read=config.read_timeout,
                write=config.write_timeout,
                pool=config.pool_timeout,
            ),
            limits=httpx.Limits(
                max_connections=config.max_connections,
                max_keepalive_connections=config.max_keepalive,
            ),
        )
        self.streaming_parser = StreamingParser()

    async def complete(
        self,
        messages: list[LLMMessage],
        settings: CompletionSettings,
    ) -> LLMResponse:
        """Get a single, non-streaming completion."""
        payload = LLMRequest(settings=settings, messages=messages).to_payload()

        try:
            response = await self.client.post("/chat/completions", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error: {e}")
            raise ProviderError(
                f"HTTP error: {e!s}",
                provider=self.provider_type.value,
                model=settings.model,
            ) from e

        self._raise_for_status(response, settings, response.text)

        try:
            result = response.json()
            choice = result["choices"][0]
            content = choice["message"].get("content") or ""
        except (KeyError, IndexError, ValueError) as e:
            logger.error(f"Unexpected response format: {e}")
            raise ProviderError(
                f"Unexpected response format: {e!s}",
                provider=self.provider_type.value,
                model=settings.model,
            ) from e

        usage = result.get("usage") or {}
        return LLMResponse(
            content=content,
            model=result.get("model", settings.model),
            finish_reason=choice.get("finish_reason"),
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            ),
        )

    async def stream_text(
        self,
        messages: list[LLMMessage],
        settings: CompletionSettings,
    ) -> AsyncGenerator[str]:
        """
        Stream content deltas of a completion, in arrival order.

        Raises ProviderError when the stream cannot be opened and
        StreamingError when it breaks off mid-flight.
        """
        payload = LLMRequest(settings=settings, messages=messages, stream=True).to_payload()
        accumulator = ChunkAccumulator()

        try:
            async with self.client.stream(
                "POST", "/chat/completions", json=payload
            ) as response:
                if response.status_code != HTTP_OK:
                    error_text = (await response.aread()).decode(errors="replace")
                    self._raise_for_status(response, settings, error_text)

                content_type = response.headers.get("content-type", "")
                if "stream" not in content_type:
                    raise ProviderError(
                        f"Expected streaming response, got content-type: {content_type}",
                        provider=self.provider_type.value,
                        model=settings.model,
                    )

                async for raw_chunk in self.streaming_parser.parse_sse_stream(
                    response.aiter_text()
                ):
                    chunk = accumulator.process_chunk(raw_chunk)
                    if chunk is None:
                        continue
                    if chunk.chunk_type == StreamChunkType.ERROR:
                        raise StreamingError(
                            chunk.error or "Stream error",
                            provider=self.provider_type.value,
                            model=settings.model,
                        )
                    if chunk.chunk_type == StreamChunkType.CONTENT and chunk.content:
                        yield chunk.content
        except httpx.HTTPError as e:
            logger.error(f"HTTP error during streaming: {e}")
            raise ProviderError(
                f"HTTP error: {e!s}",
                provider=self.provider_type.value,
                model=settings.model,
            ) from e

        stats = accumulator.get_streaming_stats()
        logger.info(
            f"Stream finished: {stats.content_chunks} content chunks, "
            f"{stats.content_length} chars in {stats.total_duration:.2f}s"
        )

    def _raise_for_status(
        self, response: httpx.Response, settings: CompletionSettings, body: str
    ) -> None:
        if response.status_code == HTTP_OK:
            return
        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            retry_after = response.headers.get("retry-after", "")
            raise RateLimitError(
                f"Provider rate limit: {body}",
                retry_after=float(retry_after) if retry_after.isdigit() else None,
                provider=self.provider_type.value,
                model=settings.model,
                status_code=response.status_code,
            )
        raise ProviderError(
            f"API error {response.status_code}: {body}",
            provider=self.provider_type.value,
            model=settings.model,
            status_code=response.status_code,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> LLMClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

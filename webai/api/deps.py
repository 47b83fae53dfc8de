"""Service container and request helpers shared by the API routers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from fastapi.responses import StreamingResponse

from webai.chat_service import ChatService
from webai.generation.events import SSE_HEADERS
from webai.generation.relay import BackgroundStreams, GenerationRelay
from webai.github_publisher import GitHubPublisher
from webai.launch.pumpfun import PumpFunGateway
from webai.llm.rate_limiting import RateLimitRegistry
from webai.projects import ProjectService
from webai.uploads import AssetStore


@dataclass
class Services:
    """Everything the routes need, built once per application."""
    repo: Any  # WebAIRepository
    llm_client: Any  # LLMClient
    relay: GenerationRelay
    chat: ChatService
    github: GitHubPublisher
    gateway: PumpFunGateway
    projects: ProjectService
    assets: AssetStore
    rate_limits: RateLimitRegistry
    background: BackgroundStreams

    async def close(self) -> None:
        """Let detached streams finish, then release clients and the database."""
        await self.background.join()
        for closeable in (self.llm_client, self.github, self.gateway, self.repo):
            await closeable.close()


def get_services(request: Request) -> Services:
    return request.app.state.services


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def sse_response(frames: AsyncIterator[str]) -> StreamingResponse:
    return StreamingResponse(
        frames,
        media_type="text/event-stream",
        headers={**SSE_HEADERS, "X-Accel-Buffering": "no"},
    )

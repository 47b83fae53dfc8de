"""Streaming chat routes for published bots and unsaved drafts."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from webai.api.deps import Services, get_services, sse_response
from webai.api.schemas import ChatRequest, DraftChatRequest

router = APIRouter(prefix="/api")

ServicesDep = Annotated[Services, Depends(get_services)]


@router.post("/chat/{slug}")
async def chat_with_bot(
    slug: str, body: ChatRequest, services: ServicesDep
) -> StreamingResponse:
    frames = await services.chat.published_chat(slug, body.messages or [])
    return sse_response(frames)


@router.post("/test-chat")
async def test_chat(body: DraftChatRequest, services: ServicesDep) -> StreamingResponse:
    return sse_response(
        services.chat.test_chat(body.system_prompt or "", body.messages or [])
    )

"""
Bot routes: streaming code generation and refinement, prompt drafting,
publishing bots as hosted chat endpoints and pushing projects to GitHub.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from webai.api.deps import Services, client_ip, get_services, sse_response
from webai.api.schemas import (
    BotDeleteRequest,
    BotUpsertRequest,
    GenerateCodeRequest,
    GeneratePromptRequest,
    GitHubPushRequest,
    RefineCodeRequest,
)
from webai.errors import Forbidden, NotFound
from webai.slugs import sanitize_slug
from webai.storage.models import BotRecord
from webai.throttle import enforce

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

ServicesDep = Annotated[Services, Depends(get_services)]

MAX_PAGE_SIZE = 50
GALLERY_FIELDS = {
    "id", "slug", "name", "description", "template", "avatar",
    "wallet_address", "message_count", "created_at",
}
GENERATION_LIMITED = "Generation rate limit exceeded. Try again later."


def _limit_generation(services: Services, request: Request) -> None:
    enforce(
        services.rate_limits,
        "ai_generation",
        f"codegen:{client_ip(request)}",
        GENERATION_LIMITED,
    )


@router.post("/bots/generate-code")
async def generate_code(
    body: GenerateCodeRequest, request: Request, services: ServicesDep
) -> StreamingResponse:
    _limit_generation(services, request)
    logger.info(f"Generating bot project (template={body.template})")
    return sse_response(services.relay.generate(body.description, body.template))


@router.post("/bots/refine-code")
async def refine_code(
    body: RefineCodeRequest, request: Request, services: ServicesDep
) -> StreamingResponse:
    _limit_generation(services, request)
    logger.info(f"Refining bot project with {len(body.files or [])} files")
    return sse_response(services.relay.refine(
        body.files or [],
        body.instruction or "",
        body.bot_name,
        body.bot_description,
    ))


@router.post("/bots/generate-prompt")
async def generate_prompt(
    body: GeneratePromptRequest, services: ServicesDep
) -> dict[str, str]:
    return await services.chat.generate_prompt(body.description, body.template)


@router.post("/bots")
async def upsert_bot(body: BotUpsertRequest, services: ServicesDep) -> dict[str, Any]:
    slug = sanitize_slug(body.slug)
    bot, created = await services.repo.upsert_bot(BotRecord(
        slug=slug,
        name=body.name,
        description=body.description or "",
        system_prompt=body.system_prompt,
        template=body.template or None,
        avatar=body.avatar or None,
        wallet_address=body.wallet_address or None,
    ))
    if created:
        logger.info(f"Published bot '{slug}'")
        return {"id": bot.id, "slug": bot.slug}
    return {"id": bot.id, "slug": bot.slug, "updated": True}


@router.get("/bots")
async def list_bots(
    services: ServicesDep,
    wallet: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1)] = 20,
) -> dict[str, Any]:
    limit = min(limit, MAX_PAGE_SIZE)
    bots, total = await services.repo.list_bots(wallet, page, limit)
    return {
        "bots": [bot.model_dump(mode="json", include=GALLERY_FIELDS) for bot in bots],
        "total": total,
        "page": page,
        "limit": limit,
    }


@router.delete("/bots")
async def delete_bot(body: BotDeleteRequest, services: ServicesDep) -> dict[str, bool]:
    bot = await services.repo.get_bot(body.id)
    if bot is None or bot.wallet_address != body.wallet:
        raise Forbidden("Not authorized")
    await services.repo.delete_bot(bot.id)
    return {"success": True}


@router.get("/bot-info/{slug}")
async def bot_info(slug: str, services: ServicesDep) -> dict[str, Any]:
    bot = await services.repo.get_bot_by_slug(slug)
    if bot is None:
        raise NotFound("Bot not found")
    return bot.public_info()


@router.post("/github/push")
async def push_to_github(
    body: GitHubPushRequest, services: ServicesDep
) -> dict[str, str]:
    return await services.github.push(
        body.repo_name or "", body.files or [], description=body.description
    )

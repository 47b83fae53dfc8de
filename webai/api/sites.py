"""
Browser bookmarks and hosted HTML: per-browser bot lists, raw published
sites and rendered token landing pages.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from webai.api.deps import Services, get_services
from webai.api.schemas import PublishSiteRequest, UserBotCreateRequest, UserBotDeleteRequest
from webai.errors import NotFound, ValidationFailed
from webai.sites import SITE_HEADERS, render_site
from webai.slugs import MAX_SITE_SLUG_LENGTH, sanitize_slug
from webai.storage.models import PublishedSite, UserBot

logger = logging.getLogger(__name__)

router = APIRouter()

ServicesDep = Annotated[Services, Depends(get_services)]

SITE_CACHE_CONTROL = "public, max-age=60, s-maxage=300"


# ─── user bookmarks ──────────────────────────────────────────


@router.get("/api/user-bots")
async def list_user_bots(
    services: ServicesDep, browser_id: str | None = None
) -> dict[str, Any]:
    if not browser_id:
        raise ValidationFailed("browser_id is required")
    bots = await services.repo.list_user_bots(browser_id)
    return {"bots": [bot.model_dump(mode="json") for bot in bots]}


@router.post("/api/user-bots")
async def save_user_bot(
    body: UserBotCreateRequest, services: ServicesDep
) -> dict[str, Any]:
    existing = await services.repo.find_user_bot(body.browser_id, body.url)
    if existing is not None:
        return {"id": existing.id, "exists": True}

    bot = await services.repo.add_user_bot(UserBot(
        browser_id=body.browser_id,
        name=body.name,
        description=body.description,
        type=body.type,
        url=body.url,
        repo_name=body.repo_name or None,
        slug=body.slug or None,
    ))
    return {"id": bot.id, "created": True}


@router.delete("/api/user-bots")
async def delete_user_bot(
    body: UserBotDeleteRequest, services: ServicesDep
) -> dict[str, bool]:
    await services.repo.delete_user_bot(body.id, body.browser_id)
    return {"success": True}


# ─── raw html sites ──────────────────────────────────────────


@router.post("/api/publish")
async def publish_site(body: PublishSiteRequest, services: ServicesDep) -> dict[str, Any]:
    slug = sanitize_slug(body.slug, max_length=MAX_SITE_SLUG_LENGTH)
    site, created = await services.repo.upsert_site(PublishedSite(
        slug=slug,
        html=body.html,
        site_name=body.site_name or slug,
        template=body.template or None,
        description=body.description or None,
        wallet_address=body.wallet_address or None,
    ))
    result: dict[str, Any] = {"id": site.id, "slug": site.slug, "url": f"/s/{site.slug}"}
    if not created:
        result["updated"] = True
    logger.info(f"Published site '{slug}' ({'new' if created else 'updated'})")
    return result


@router.get("/api/site/{slug}")
async def raw_site(slug: str, services: ServicesDep) -> Response:
    site = await services.repo.get_site(slug)
    if site is None:
        return PlainTextResponse("Not Found", status_code=404)
    return HTMLResponse(site.html, headers={"Cache-Control": SITE_CACHE_CONTROL})


# ─── token landing pages ─────────────────────────────────────


@router.get("/site/{subdomain}")
async def landing_page(subdomain: str, services: ServicesDep) -> Response:
    try:
        project = await services.projects.published_site(subdomain)
    except NotFound:
        return PlainTextResponse("Site not found", status_code=404)
    return HTMLResponse(render_site(project), headers=SITE_HEADERS)

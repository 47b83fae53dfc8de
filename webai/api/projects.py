"""Token launch project routes and asset uploads."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from webai.api.deps import Services, client_ip, get_services
from webai.api.schemas import LaunchRequest, ProjectCreateRequest, PublishToggleRequest
from webai.errors import ValidationFailed
from webai.storage.models import Project

router = APIRouter(prefix="/api")

ServicesDep = Annotated[Services, Depends(get_services)]


def _project_json(project: Project) -> dict[str, Any]:
    return project.model_dump(mode="json", by_alias=True)


@router.get("/projects")
async def list_projects(
    services: ServicesDep, wallet: str | None = None
) -> dict[str, Any]:
    if not wallet:
        raise ValidationFailed("wallet query param required")
    projects = await services.projects.list_for_wallet(wallet)
    return {"projects": [_project_json(project) for project in projects]}


@router.post("/projects", status_code=201)
async def create_project(
    body: ProjectCreateRequest, request: Request, services: ServicesDep
) -> JSONResponse:
    project = await services.projects.create(
        body.wallet_address,
        body.token,
        body.site.subdomain,
        template_id=body.site.template_id,
        theme=body.site.theme,
        ip=client_ip(request),
    )
    return JSONResponse({"projectId": project.id}, status_code=201)


@router.get("/projects/{project_id}")
async def get_project(project_id: str, services: ServicesDep) -> dict[str, Any]:
    project = await services.projects.get(project_id)
    return {"project": _project_json(project)}


@router.post("/projects/{project_id}/generate")
async def regenerate_sections(
    project_id: str, request: Request, services: ServicesDep
) -> dict[str, Any]:
    sections = await services.projects.regenerate_sections(
        project_id, ip=client_ip(request)
    )
    return {"sections": [section.model_dump(mode="json") for section in sections]}


@router.post("/projects/{project_id}/publish")
async def publish_project(
    project_id: str,
    request: Request,
    services: ServicesDep,
    body: PublishToggleRequest | None = None,
) -> dict[str, bool]:
    publish = body.publish if body is not None else True
    published = await services.projects.set_published(
        project_id, publish, ip=client_ip(request)
    )
    return {"published": published}


@router.post("/projects/{project_id}/launch")
async def launch_project(
    project_id: str, body: LaunchRequest, request: Request, services: ServicesDep
) -> dict[str, Any]:
    # Unknown projects are reported before the action is looked at
    await services.projects.get(project_id)
    ip = client_ip(request)

    if body.action == "prepare":
        return await services.projects.prepare_launch(
            project_id, body.wallet_address, ip=ip
        )
    if body.action == "confirm":
        return await services.projects.confirm_launch(
            project_id, body.attempt_id, body.tx_signature, ip=ip
        )
    raise ValidationFailed("Invalid action")


@router.post("/upload")
async def upload_asset(
    request: Request,
    services: ServicesDep,
    file: Annotated[UploadFile | None, File()] = None,
    project_id: Annotated[str | None, Form(alias="projectId")] = None,
    asset_type: Annotated[str, Form(alias="type")] = "OTHER",
    wallet_address: Annotated[str | None, Form(alias="walletAddress")] = None,
) -> dict[str, str]:
    if file is None or not project_id:
        raise ValidationFailed("file and projectId are required")

    data = await file.read()
    asset = await services.projects.upload_asset(
        project_id,
        file.filename,
        file.content_type,
        data,
        asset_type=asset_type,
        wallet_address=wallet_address,
        ip=client_ip(request),
    )
    return {"assetId": asset.id, "path": asset.path}

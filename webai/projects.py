"""
Token launch projects: creation with a generated landing page, section
regeneration, publishing, launch preparation and confirmation, and asset
uploads. Every state change is recorded in the audit log.
"""

from __future__ import annotations

import logging
from typing import Any

from webai import audit
from webai.errors import Conflict, NotFound, UpstreamFailure, ValidationFailed
from webai.launch.pumpfun import PumpFunGateway
from webai.logging_utils import log_operation, operation_context
from webai.llm.rate_limiting import RateLimitRegistry
from webai.sites.generator import SiteContentGenerator, build_seo
from webai.sites.moderation import moderate_text
from webai.sites.themes import theme_for_template
from webai.storage.models import (
    Asset,
    AssetType,
    LaunchAttempt,
    LaunchStatus,
    Project,
    ProjectStatus,
    SiteConfig,
    SiteSection,
    SiteTheme,
    TokenDraft,
)
from webai.throttle import enforce
from webai.uploads import AssetStore

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(
        self,
        repo: Any,
        site_generator: SiteContentGenerator,
        gateway: PumpFunGateway,
        assets: AssetStore,
        rate_limits: RateLimitRegistry,
    ):
        self.repo = repo
        self.site_generator = site_generator
        self.gateway = gateway
        self.assets = assets
        self.rate_limits = rate_limits

    async def _require(self, project_id: str) -> Project:
        project = await self.repo.get_project(project_id)
        if project is None:
            raise NotFound("Project not found")
        return project

    # ------------------------------------------------------------------ #
    # Creation and content                                               #
    # ------------------------------------------------------------------ #

    async def create(
        self,
        wallet_address: str,
        token: TokenDraft,
        subdomain: str,
        template_id: str = "modern",
        theme: SiteTheme | None = None,
        ip: str | None = None,
    ) -> Project:
        """
        Create a project and publish its generated landing page.

        Raises:
            RateLimited: If the wallet created too many projects recently.
            ValidationFailed: If the name or description fails moderation.
            Conflict: If the subdomain is taken.
        """
        enforce(self.rate_limits, "ai_generation", f"create:{wallet_address}")

        for text in (token.name, token.description):
            moderation = moderate_text(text)
            if not moderation.ok:
                raise ValidationFailed(moderation.reason or "Content not allowed")

        if await self.repo.subdomain_taken(subdomain):
            raise Conflict("This subdomain is already taken")

        async with operation_context(
            "generate_site_sections", context={"subdomain": subdomain}
        ):
            sections = await self.site_generator.generate_sections(token)
        project = Project(
            wallet_address=wallet_address,
            status=ProjectStatus.SITE_PUBLISHED,
            token_draft=token,
            site_config=SiteConfig(
                subdomain=subdomain,
                template_id=template_id,
                theme=theme or theme_for_template(template_id),
                sections=sections,
                seo=build_seo(token),
                published=True,
            ),
        )
        await self.repo.create_project(project)

        await audit.log_audit(
            self.repo,
            audit.PROJECT_CREATED,
            project_id=project.id,
            wallet_address=wallet_address,
            details={"subdomain": subdomain, "symbol": token.symbol},
            ip=ip,
        )
        logger.info(f"Created project {project.id} at '{subdomain}'")
        return project

    async def get(self, project_id: str) -> Project:
        return await self._require(project_id)

    async def list_for_wallet(self, wallet_address: str) -> list[Project]:
        return await self.repo.list_projects(wallet_address)

    async def regenerate_sections(
        self, project_id: str, ip: str | None = None
    ) -> list[SiteSection]:
        project = await self._require(project_id)
        enforce(
            self.rate_limits,
            "ai_generation",
            f"generate:{project.wallet_address}",
            "Generation rate limit exceeded. Try again later.",
        )

        sections = await self.site_generator.generate_sections(project.token_draft)
        await self.repo.update_site_sections(project_id, sections)
        await audit.log_audit(
            self.repo,
            audit.SITE_REGENERATED,
            project_id=project_id,
            wallet_address=project.wallet_address,
            ip=ip,
        )
        return sections

    async def set_published(
        self, project_id: str, publish: bool, ip: str | None = None
    ) -> bool:
        project = await self._require(project_id)
        await self.repo.set_site_published(project_id, publish)
        if publish:
            await self.repo.update_project_status(
                project_id, ProjectStatus.SITE_PUBLISHED
            )
        await audit.log_audit(
            self.repo,
            audit.SITE_PUBLISHED if publish else audit.SITE_UNPUBLISHED,
            project_id=project_id,
            wallet_address=project.wallet_address,
            ip=ip,
        )
        return publish

    async def published_site(self, subdomain: str) -> Project:
        project = await self.repo.get_project_by_subdomain(subdomain)
        if project is None or not project.site_config.published:
            raise NotFound("Site not found")
        return project

    # ------------------------------------------------------------------ #
    # Launch                                                             #
    # ------------------------------------------------------------------ #

    async def prepare_launch(
        self, project_id: str, wallet_address: str | None, ip: str | None = None
    ) -> dict[str, Any]:
        project = await self._require(project_id)
        enforce(
            self.rate_limits, "launch", f"launch:{project.wallet_address}",
            "Launch rate limit exceeded.",
        )
        if not wallet_address:
            raise ValidationFailed("walletAddress required")

        payload = self.gateway.build_launch_payload(project.token_draft, wallet_address)
        attempt = await self.repo.add_launch_attempt(
            LaunchAttempt(project_id=project_id, payload=payload)
        )
        await self.repo.update_project_status(project_id, ProjectStatus.LAUNCHING)

        await audit.log_audit(
            self.repo,
            audit.LAUNCH_PREPARED,
            project_id=project_id,
            wallet_address=wallet_address,
            details={"attemptId": attempt.id, "method": payload["method"]},
            ip=ip,
        )
        return {"attemptId": attempt.id, "payload": payload}

    @log_operation("confirm_launch")
    async def confirm_launch(
        self,
        project_id: str,
        attempt_id: str | None,
        tx_signature: str | None,
        ip: str | None = None,
    ) -> dict[str, Any]:
        """
        Finish a prepared launch: submit it server-side for the API method,
        or verify the user's signature for the on-chain method.

        Raises:
            UpstreamFailure: If the launch API rejects the submission.
        """
        project = await self._require(project_id)
        enforce(
            self.rate_limits, "launch", f"launch:{project.wallet_address}",
            "Launch rate limit exceeded.",
        )
        if not attempt_id:
            raise ValidationFailed("attemptId required")

        attempt = await self.repo.get_launch_attempt(attempt_id)
        if attempt is None or attempt.project_id != project_id:
            raise NotFound("Launch attempt not found")

        payload = attempt.payload
        if payload.get("method") == "api" and payload.get("apiPayload"):
            return await self._confirm_via_api(project, attempt, ip)

        if not tx_signature:
            raise ValidationFailed("txSignature required for on-chain method")

        verified = await self.gateway.verify_launch(tx_signature)
        attempt.status = (
            LaunchStatus.CONFIRMED if verified.confirmed else LaunchStatus.FAILED
        )
        attempt.tx_signature = tx_signature
        attempt.mint_address = verified.mint_address
        attempt.error_message = None if verified.confirmed else "Transaction not confirmed"
        await self.repo.update_launch_attempt(attempt)
        if verified.confirmed:
            await self.repo.update_project_status(project_id, ProjectStatus.LAUNCHED)

        await audit.log_audit(
            self.repo,
            audit.LAUNCH_CONFIRMED if verified.confirmed else audit.LAUNCH_FAILED,
            project_id=project_id,
            wallet_address=project.wallet_address,
            details={"txSignature": tx_signature},
            ip=ip,
        )
        return {
            "success": verified.confirmed,
            "txSignature": tx_signature,
            "mintAddress": verified.mint_address,
        }

    async def _confirm_via_api(
        self, project: Project, attempt: LaunchAttempt, ip: str | None
    ) -> dict[str, Any]:
        result = await self.gateway.submit_via_api(attempt.payload["apiPayload"])
        if not result.success:
            attempt.status = LaunchStatus.FAILED
            attempt.error_message = result.error
            await self.repo.update_launch_attempt(attempt)
            await self.repo.update_project_status(project.id, ProjectStatus.FAILED)
            await audit.log_audit(
                self.repo,
                audit.LAUNCH_FAILED,
                project_id=project.id,
                wallet_address=project.wallet_address,
                details={"error": result.error},
                ip=ip,
            )
            raise UpstreamFailure(result.error or "Launch failed")

        attempt.status = LaunchStatus.CONFIRMED
        attempt.tx_signature = result.tx_signature
        await self.repo.update_launch_attempt(attempt)
        await self.repo.update_project_status(project.id, ProjectStatus.LAUNCHED)
        await audit.log_audit(
            self.repo,
            audit.LAUNCH_CONFIRMED,
            project_id=project.id,
            wallet_address=project.wallet_address,
            details={"txSignature": result.tx_signature},
            ip=ip,
        )
        return {"success": True, "txSignature": result.tx_signature}

    # ------------------------------------------------------------------ #
    # Assets                                                             #
    # ------------------------------------------------------------------ #

    async def upload_asset(
        self,
        project_id: str,
        filename: str | None,
        content_type: str | None,
        data: bytes,
        asset_type: str = "OTHER",
        wallet_address: str | None = None,
        ip: str | None = None,
    ) -> Asset:
        if wallet_address:
            enforce(
                self.rate_limits, "upload", f"upload:{wallet_address}",
                "Upload rate limit exceeded",
            )
        try:
            kind = AssetType(asset_type)
        except ValueError as e:
            raise ValidationFailed(f"Invalid asset type: {asset_type}") from e

        self.assets.validate(content_type, len(data))
        project = await self._require(project_id)

        stored = await self.assets.save(project_id, filename, content_type, data)
        asset = await self.repo.add_asset(Asset(
            project_id=project_id,
            type=kind,
            filename=filename or "upload",
            path=stored.public_path,
            mime_type=content_type or "application/octet-stream",
            size_bytes=stored.size_bytes,
        ))
        await audit.log_audit(
            self.repo,
            audit.ASSET_UPLOADED,
            project_id=project_id,
            wallet_address=wallet_address or project.wallet_address,
            details={"assetId": asset.id, "type": kind.value, "filename": filename},
            ip=ip,
        )
        return asset

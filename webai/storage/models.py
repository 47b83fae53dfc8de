# webai/storage/models.py
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class BotRecord(BaseModel):
    """A published bot, addressed by its unique slug."""
    id: str = Field(default_factory=_new_id)
    slug: str
    name: str
    description: str = ""
    system_prompt: str
    template: str | None = None
    avatar: str | None = None
    wallet_address: str | None = None
    is_public: bool = True
    message_count: int = 0
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def public_info(self) -> dict[str, Any]:
        """Fields safe to show on a bot's chat page."""
        return self.model_dump(
            mode="json",
            include={
                "name", "description", "slug", "template", "avatar",
                "message_count",
            },
        )


class UserBot(BaseModel):
    """Per-browser bookmark of a bot the user created."""
    id: str = Field(default_factory=_new_id)
    browser_id: str
    name: str
    description: str = ""
    type: Literal["github", "webai"]
    url: str
    repo_name: str | None = None
    slug: str | None = None
    created_at: datetime = Field(default_factory=_now)


class PublishedSite(BaseModel):
    id: str = Field(default_factory=_new_id)
    slug: str
    html: str
    site_name: str
    template: str | None = None
    description: str | None = None
    wallet_address: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class ProjectStatus(str, Enum):
    DRAFT = "DRAFT"
    SITE_GENERATING = "SITE_GENERATING"
    SITE_PUBLISHED = "SITE_PUBLISHED"
    LAUNCHING = "LAUNCHING"
    LAUNCHED = "LAUNCHED"
    FAILED = "FAILED"


class LaunchStatus(str, Enum):
    AWAITING_SIGNATURE = "AWAITING_SIGNATURE"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


class AssetType(str, Enum):
    LOGO = "LOGO"
    BANNER = "BANNER"
    FAVICON = "FAVICON"
    OTHER = "OTHER"


SectionType = Literal["hero", "about", "tokenomics", "roadmap", "faq", "socials"]
TemplateId = Literal["modern", "minimal", "neon"]


class TokenDraft(BaseModel):
    """Token metadata entered by the user before launch."""
    name: str = Field(min_length=1, max_length=32, pattern=r"^[a-zA-Z0-9\s]+$")
    symbol: str = Field(min_length=1, max_length=10, pattern=r"^[A-Z0-9]+$")
    description: str = Field(min_length=10, max_length=1000)
    decimals: int = Field(default=9, ge=0, le=18)
    total_supply: str = Field(default="1000000000", alias="totalSupply")
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None
    discord: str | None = None

    model_config = {"populate_by_name": True}

    @field_validator("website")
    @classmethod
    def _website_is_url(cls, value: str | None) -> str | None:
        if not value:
            return value
        if not value.startswith(("http://", "https://")) or "." not in value:
            raise ValueError("website must be a valid URL")
        return value


class SiteTheme(BaseModel):
    primary_color: str = Field(default="#6366f1", alias="primaryColor")
    secondary_color: str = Field(default="#8b5cf6", alias="secondaryColor")
    background_color: str = Field(default="#0f0f23", alias="backgroundColor")
    text_color: str = Field(default="#ffffff", alias="textColor")
    font_family: str = Field(default="Inter", alias="fontFamily")

    model_config = {"populate_by_name": True}


class SiteSection(BaseModel):
    id: str
    type: SectionType
    title: str
    content: str
    enabled: bool = True
    order: int


class SiteConfig(BaseModel):
    subdomain: str
    template_id: TemplateId = Field(default="modern", alias="templateId")
    theme: SiteTheme = Field(default_factory=SiteTheme)
    sections: list[SiteSection] = Field(default_factory=list)
    seo: dict[str, str] = Field(default_factory=dict)
    published: bool = False

    model_config = {"populate_by_name": True}


class LaunchAttempt(BaseModel):
    id: str = Field(default_factory=_new_id)
    project_id: str
    status: LaunchStatus = LaunchStatus.AWAITING_SIGNATURE
    payload: dict[str, Any] = Field(default_factory=dict)
    tx_signature: str | None = None
    mint_address: str | None = None
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_now)


class Asset(BaseModel):
    id: str = Field(default_factory=_new_id)
    project_id: str
    type: AssetType = AssetType.OTHER
    filename: str
    path: str
    mime_type: str
    size_bytes: int
    created_at: datetime = Field(default_factory=_now)


class Project(BaseModel):
    """A token launch project: draft, landing page and launch history."""
    id: str = Field(default_factory=_new_id)
    wallet_address: str
    status: ProjectStatus = ProjectStatus.DRAFT
    token_draft: TokenDraft
    site_config: SiteConfig
    assets: list[Asset] = Field(default_factory=list)
    launch_attempts: list[LaunchAttempt] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class AuditEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    project_id: str | None = None
    wallet_address: str | None = None
    action: str
    details: dict[str, Any] = Field(default_factory=dict)
    ip: str | None = None
    created_at: datetime = Field(default_factory=_now)

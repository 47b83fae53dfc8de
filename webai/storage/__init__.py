# webai/storage/__init__.py
from webai.storage.models import (
    Asset,
    AssetType,
    AuditEntry,
    BotRecord,
    LaunchAttempt,
    LaunchStatus,
    Project,
    ProjectStatus,
    PublishedSite,
    SiteConfig,
    SiteSection,
    SiteTheme,
    TokenDraft,
    UserBot,
)
from webai.storage.repositories.base import WebAIRepository
from webai.storage.repositories.sql_repo import AsyncSqlRepo

__all__ = [
    "Asset",
    "AssetType",
    "AsyncSqlRepo",
    "AuditEntry",
    "BotRecord",
    "LaunchAttempt",
    "LaunchStatus",
    "Project",
    "ProjectStatus",
    "PublishedSite",
    "SiteConfig",
    "SiteSection",
    "SiteTheme",
    "TokenDraft",
    "UserBot",
    "WebAIRepository",
]

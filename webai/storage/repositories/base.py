# webai/storage/repositories/base.py
from __future__ import annotations

from typing import Protocol

from webai.storage.models import (
    Asset,
    AuditEntry,
    BotRecord,
    LaunchAttempt,
    Project,
    ProjectStatus,
    PublishedSite,
    SiteSection,
    UserBot,
)


class WebAIRepository(Protocol):
    """
    Interface for storing bots, bookmarks, published sites and token projects.
    """

    async def upsert_bot(self, bot: BotRecord) -> tuple[BotRecord, bool]:
        """
        Insert a bot, or update the existing one with the same slug in place.
        Returns the stored record and True when it was newly created.
        """
        ...

    async def get_bot(self, bot_id: str) -> BotRecord | None:
        ...

    async def get_bot_by_slug(self, slug: str) -> BotRecord | None:
        ...

    async def list_bots(
        self, wallet: str | None, page: int, limit: int
    ) -> tuple[list[BotRecord], int]:
        """
        Return one page of bots, newest first, and the total count.
        With a wallet only that wallet's bots are listed, otherwise public ones.
        """
        ...

    async def delete_bot(self, bot_id: str) -> bool:
        ...

    async def increment_message_count(self, slug: str) -> bool:
        """
        Atomically add one to a bot's message counter.
        """
        ...

    async def list_user_bots(self, browser_id: str) -> list[UserBot]:
        ...

    async def find_user_bot(self, browser_id: str, url: str) -> UserBot | None:
        ...

    async def add_user_bot(self, bot: UserBot) -> UserBot:
        ...

    async def delete_user_bot(self, bot_id: str, browser_id: str) -> bool:
        ...

    async def upsert_site(self, site: PublishedSite) -> tuple[PublishedSite, bool]:
        ...

    async def get_site(self, slug: str) -> PublishedSite | None:
        ...

    async def subdomain_taken(self, subdomain: str) -> bool:
        ...

    async def create_project(self, project: Project) -> Project:
        ...

    async def get_project(self, project_id: str) -> Project | None:
        """
        Return a project with its assets and most recent launch attempts.
        """
        ...

    async def get_project_by_subdomain(self, subdomain: str) -> Project | None:
        ...

    async def list_projects(self, wallet: str) -> list[Project]:
        ...

    async def update_project_status(
        self, project_id: str, status: ProjectStatus
    ) -> None:
        ...

    async def update_site_sections(
        self, project_id: str, sections: list[SiteSection]
    ) -> None:
        ...

    async def set_site_published(self, project_id: str, published: bool) -> None:
        ...

    async def add_launch_attempt(self, attempt: LaunchAttempt) -> LaunchAttempt:
        ...

    async def get_launch_attempt(self, attempt_id: str) -> LaunchAttempt | None:
        ...

    async def update_launch_attempt(self, attempt: LaunchAttempt) -> None:
        ...

    async def add_asset(self, asset: Asset) -> Asset:
        ...

    async def add_audit_entry(self, entry: AuditEntry) -> None:
        ...

    async def list_audit_entries(self, project_id: str) -> list[AuditEntry]:
        ...

#!/usr/bin/env python3
"""
Tests for the SQLite repository: bot upserts, atomic message counting,
bookmarks, published sites, projects and the audit log.
"""

import asyncio
import sqlite3

import pytest

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
    TokenDraft,
    UserBot,
)
from webai.storage.repositories.sql_repo import RECENT_LAUNCH_ATTEMPTS, AsyncSqlRepo


@pytest.fixture
async def repo(tmp_path):
    repo = AsyncSqlRepo(str(tmp_path / "webai.db"))
    yield repo
    await repo.close()


def bot(slug="quiz-bot", **overrides) -> BotRecord:
    return BotRecord(**{
        "slug": slug,
        "name": "Quiz Bot",
        "system_prompt": "You are a quiz host.",
        "wallet_address": "wallet-1",
        **overrides,
    })


def project(subdomain="moon", wallet="wallet-1") -> Project:
    return Project(
        wallet_address=wallet,
        token_draft=TokenDraft(
            name="Moon Coin", symbol="MOON", description="A coin for the moon"
        ),
        site_config=SiteConfig(subdomain=subdomain),
    )


class TestBots:
    async def test_upsert_creates_then_updates(self, repo):
        created, is_new = await repo.upsert_bot(bot())
        assert is_new

        updated, is_new = await repo.upsert_bot(
            bot(name="Quiz Bot 2", wallet_address=None)
        )
        assert not is_new
        assert updated.id == created.id
        assert updated.wallet_address == "wallet-1"

        stored = await repo.get_bot_by_slug("quiz-bot")
        assert stored.name == "Quiz Bot 2"
        assert stored.wallet_address == "wallet-1"
        assert stored.is_public is True

    async def test_concurrent_increments_are_not_lost(self, repo):
        await repo.upsert_bot(bot())
        await asyncio.gather(*(repo.increment_message_count("quiz-bot") for _ in range(25)))
        assert (await repo.get_bot_by_slug("quiz-bot")).message_count == 25

    async def test_increment_unknown_slug(self, repo):
        assert await repo.increment_message_count("ghost") is False

    async def test_list_by_wallet_and_pages(self, repo):
        for index in range(5):
            await repo.upsert_bot(bot(slug=f"bot-{index}", wallet_address=f"w{index % 2}"))

        mine, total = await repo.list_bots("w0", 1, 10)
        assert total == 3
        assert {b.slug for b in mine} == {"bot-0", "bot-2", "bot-4"}

        page, total = await repo.list_bots(None, 2, 2)
        assert total == 5
        assert len(page) == 2

    async def test_delete(self, repo):
        created, _ = await repo.upsert_bot(bot())
        assert await repo.delete_bot(created.id)
        assert not await repo.delete_bot(created.id)
        assert await repo.get_bot(created.id) is None

    async def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "reopen.db")
        async with AsyncSqlRepo(path) as first:
            await first.upsert_bot(bot())
        async with AsyncSqlRepo(path) as second:
            assert (await second.get_bot_by_slug("quiz-bot")).name == "Quiz Bot"


class TestUserBots:
    async def test_unique_per_browser_and_url(self, repo):
        entry = UserBot(browser_id="b1", name="Quiz", type="webai", url="/b/quiz")
        await repo.add_user_bot(entry)
        with pytest.raises(sqlite3.IntegrityError):
            await repo.add_user_bot(
                UserBot(browser_id="b1", name="Again", type="webai", url="/b/quiz")
            )
        await repo.add_user_bot(
            UserBot(browser_id="b2", name="Quiz", type="webai", url="/b/quiz")
        )

        found = await repo.find_user_bot("b1", "/b/quiz")
        assert found.id == entry.id
        assert [b.id for b in await repo.list_user_bots("b1")] == [entry.id]

    async def test_delete_checks_browser(self, repo):
        entry = await repo.add_user_bot(
            UserBot(browser_id="b1", name="Quiz", type="github", url="https://gh/x")
        )
        assert not await repo.delete_user_bot(entry.id, "b2")
        assert await repo.delete_user_bot(entry.id, "b1")


class TestSites:
    async def test_upsert_keeps_id_and_wallet(self, repo):
        first, created = await repo.upsert_site(PublishedSite(
            slug="my-site", html="<p>1</p>", site_name="Mine", wallet_address="w1",
        ))
        assert created
        second, created = await repo.upsert_site(PublishedSite(
            slug="my-site", html="<p>2</p>", site_name="Mine",
        ))
        assert not created
        assert second.id == first.id
        assert second.wallet_address == "w1"
        assert (await repo.get_site("my-site")).html == "<p>2</p>"
        assert await repo.get_site("other") is None


class TestProjects:
    async def test_round_trip(self, repo):
        stored = await repo.create_project(project())
        loaded = await repo.get_project(stored.id)
        assert loaded.token_draft.symbol == "MOON"
        assert loaded.site_config.subdomain == "moon"
        assert loaded.status == ProjectStatus.DRAFT
        assert await repo.subdomain_taken("moon")
        assert not await repo.subdomain_taken("sun")

    async def test_subdomain_is_unique(self, repo):
        await repo.create_project(project())
        with pytest.raises(sqlite3.IntegrityError):
            await repo.create_project(project(wallet="wallet-2"))

    async def test_sections_publish_and_status(self, repo):
        stored = await repo.create_project(project())
        sections = [SiteSection(id="hero", type="hero", title="Moon", content="Hi", order=0)]
        await repo.update_site_sections(stored.id, sections)
        await repo.set_site_published(stored.id, True)
        await repo.update_project_status(stored.id, ProjectStatus.SITE_PUBLISHED)

        loaded = await repo.get_project_by_subdomain("moon")
        assert loaded.site_config.sections == sections
        assert loaded.site_config.published is True
        assert loaded.status == ProjectStatus.SITE_PUBLISHED
        assert [p.id for p in await repo.list_projects("wallet-1")] == [stored.id]
        assert await repo.list_projects("wallet-2") == []

    async def test_launch_attempts_and_assets(self, repo):
        stored = await repo.create_project(project())
        attempts = []
        for index in range(RECENT_LAUNCH_ATTEMPTS + 2):
            attempts.append(await repo.add_launch_attempt(LaunchAttempt(
                project_id=stored.id, payload={"n": index},
            )))
        latest = attempts[-1]
        latest.status = LaunchStatus.CONFIRMED
        latest.tx_signature = "sig"
        latest.mint_address = "mint"
        await repo.update_launch_attempt(latest)

        await repo.add_asset(Asset(
            project_id=stored.id, type=AssetType.LOGO, filename="logo.png",
            path="/uploads/x/logo.png", mime_type="image/png", size_bytes=10,
        ))

        loaded = await repo.get_project(stored.id)
        assert len(loaded.launch_attempts) == RECENT_LAUNCH_ATTEMPTS
        assert loaded.assets[0].type == AssetType.LOGO

        fetched = await repo.get_launch_attempt(latest.id)
        assert fetched.status == LaunchStatus.CONFIRMED
        assert fetched.payload == {"n": RECENT_LAUNCH_ATTEMPTS + 1}
        assert fetched.mint_address == "mint"


class TestAudit:
    async def test_entries_in_order(self, repo):
        await repo.add_audit_entry(AuditEntry(
            project_id="p1", action="PROJECT_CREATED", details={"subdomain": "moon"},
        ))
        await repo.add_audit_entry(AuditEntry(project_id="p1", action="SITE_PUBLISHED"))
        await repo.add_audit_entry(AuditEntry(project_id="p2", action="PROJECT_CREATED"))

        entries = await repo.list_audit_entries("p1")
        assert [e.action for e in entries] == ["PROJECT_CREATED", "SITE_PUBLISHED"]
        assert entries[0].details == {"subdomain": "moon"}

# webai/storage/repositories/sql_repo.py
from __future__ import annotations

import asyncio
import json
import logging
from datetime import UTC, datetime
from typing import Any

import aiosqlite

from webai.storage.models import (
    Asset,
    AuditEntry,
    BotRecord,
    LaunchAttempt,
    Project,
    ProjectStatus,
    PublishedSite,
    SiteConfig,
    SiteSection,
    TokenDraft,
    UserBot,
)
from webai.storage.repositories.base import WebAIRepository

logger = logging.getLogger(__name__)

RECENT_LAUNCH_ATTEMPTS = 5

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS bots (
        id TEXT PRIMARY KEY,
        slug TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        system_prompt TEXT NOT NULL,
        template TEXT,
        avatar TEXT,
        wallet_address TEXT,
        is_public INTEGER NOT NULL DEFAULT 1,
        message_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_bots_wallet ON bots(wallet_address)",
    """
    CREATE TABLE IF NOT EXISTS user_bots (
        id TEXT PRIMARY KEY,
        browser_id TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        type TEXT NOT NULL,
        url TEXT NOT NULL,
        repo_name TEXT,
        slug TEXT,
        created_at TEXT NOT NULL,
        UNIQUE (browser_id, url)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS published_sites (
        id TEXT PRIMARY KEY,
        slug TEXT NOT NULL UNIQUE,
        html TEXT NOT NULL,
        site_name TEXT NOT NULL,
        template TEXT,
        description TEXT,
        wallet_address TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id TEXT PRIMARY KEY,
        wallet_address TEXT NOT NULL,
        status TEXT NOT NULL,
        subdomain TEXT NOT NULL UNIQUE,
        token_draft TEXT NOT NULL,
        site_config TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_projects_wallet ON projects(wallet_address)",
    """
    CREATE TABLE IF NOT EXISTS launch_attempts (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        status TEXT NOT NULL,
        payload TEXT NOT NULL,
        tx_signature TEXT,
        mint_address TEXT,
        error_message TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS assets (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        type TEXT NOT NULL,
        filename TEXT NOT NULL,
        path TEXT NOT NULL,
        mime_type TEXT NOT NULL,
        size_bytes INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id TEXT PRIMARY KEY,
        project_id TEXT,
        wallet_address TEXT,
        action TEXT NOT NULL,
        details TEXT NOT NULL,
        ip TEXT,
        created_at TEXT NOT NULL
    )
    """,
)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AsyncSqlRepo(WebAIRepository):
    """
    SQLite implementation of WebAIRepository.
    One persistent connection; all access is serialized through a lock.
    Nested documents (token draft, site config, launch payloads) are stored
    as JSON text.
    """

    def __init__(self, db_path: str = "webai.db"):
        self.db_path = db_path
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._connection_lock = asyncio.Lock()  # Serialize database access
        self._connection: aiosqlite.Connection | None = None

    async def _initialize(self) -> None:
        """
        Lazily create tables and indices on first use.
        """
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return

            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row

            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA synchronous=NORMAL")
            await self._connection.execute("PRAGMA temp_store=memory")
            # 30 second timeout
            await self._connection.execute("PRAGMA busy_timeout=30000")

            for statement in _SCHEMA:
                await self._connection.execute(statement)
            await self._connection.commit()
            self._initialized = True
            logger.info(f"Database ready at {self.db_path}")

    async def close(self) -> None:
        """
        Close the persistent database connection.
        """
        if self._connection:
            await self._connection.close()
            self._connection = None
            self._initialized = False

    async def __aenter__(self) -> AsyncSqlRepo:
        await self._initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _conn(self) -> aiosqlite.Connection:
        await self._initialize()
        if not self._connection:
            raise RuntimeError("Database connection not available")
        return self._connection

    async def _fetchone(self, query: str, params: tuple = ()) -> aiosqlite.Row | None:
        conn = await self._conn()
        async with self._connection_lock:
            cursor = await conn.execute(query, params)
            row = await cursor.fetchone()
            await cursor.close()
        return row

    async def _fetchall(self, query: str, params: tuple = ()) -> list[aiosqlite.Row]:
        conn = await self._conn()
        async with self._connection_lock:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            await cursor.close()
        return list(rows)

    async def _execute(self, query: str, params: tuple = ()) -> int:
        """Run one write statement and commit; returns the affected row count."""
        conn = await self._conn()
        async with self._connection_lock:
            cursor = await conn.execute(query, params)
            await conn.commit()
            changed = cursor.rowcount
            await cursor.close()
        return changed

    # ─── bots ────────────────────────────────────────────────

    async def upsert_bot(self, bot: BotRecord) -> tuple[BotRecord, bool]:
        conn = await self._conn()
        now = _now_iso()
        async with self._connection_lock:
            cursor = await conn.execute(
                "SELECT * FROM bots WHERE slug = ?", (bot.slug,)
            )
            existing = await cursor.fetchone()
            await cursor.close()

            if existing:
                wallet = bot.wallet_address or existing["wallet_address"]
                await conn.execute("""
                    UPDATE bots SET name = ?, description = ?, system_prompt = ?,
                        template = ?, avatar = ?, wallet_address = ?, updated_at = ?
                    WHERE id = ?
                """, (
                    bot.name, bot.description, bot.system_prompt, bot.template,
                    bot.avatar, wallet, now, existing["id"],
                ))
                await conn.commit()
                stored = self._row_to_bot(existing).model_copy(update={
                    "name": bot.name,
                    "description": bot.description,
                    "system_prompt": bot.system_prompt,
                    "template": bot.template,
                    "avatar": bot.avatar,
                    "wallet_address": wallet,
                    "updated_at": datetime.fromisoformat(now),
                })
                return stored, False

            await conn.execute("""
                INSERT INTO bots (
                    id, slug, name, description, system_prompt, template, avatar,
                    wallet_address, is_public, message_count, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                bot.id, bot.slug, bot.name, bot.description, bot.system_prompt,
                bot.template, bot.avatar, bot.wallet_address, int(bot.is_public),
                bot.message_count, bot.created_at.isoformat(),
                bot.updated_at.isoformat(),
            ))
            await conn.commit()
        return bot, True

    async def get_bot(self, bot_id: str) -> BotRecord | None:
        row = await self._fetchone("SELECT * FROM bots WHERE id = ?", (bot_id,))
        return self._row_to_bot(row) if row else None

    async def get_bot_by_slug(self, slug: str) -> BotRecord | None:
        row = await self._fetchone("SELECT * FROM bots WHERE slug = ?", (slug,))
        return self._row_to_bot(row) if row else None

    async def list_bots(
        self, wallet: str | None, page: int, limit: int
    ) -> tuple[list[BotRecord], int]:
        if wallet:
            where, params = "wallet_address = ?", (wallet,)
        else:
            where, params = "is_public = 1", ()

        count_row = await self._fetchone(
            f"SELECT COUNT(*) AS total FROM bots WHERE {where}", params
        )
        rows = await self._fetchall(
            f"SELECT * FROM bots WHERE {where} "
            "ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (*params, limit, (page - 1) * limit),
        )
        total = count_row["total"] if count_row else 0
        return [self._row_to_bot(row) for row in rows], total

    async def delete_bot(self, bot_id: str) -> bool:
        return await self._execute("DELETE FROM bots WHERE id = ?", (bot_id,)) > 0

    async def increment_message_count(self, slug: str) -> bool:
        changed = await self._execute(
            "UPDATE bots SET message_count = message_count + 1 WHERE slug = ?",
            (slug,),
        )
        return changed > 0

    # ─── user bots ───────────────────────────────────────────

    async def list_user_bots(self, browser_id: str) -> list[UserBot]:
        rows = await self._fetchall(
            "SELECT * FROM user_bots WHERE browser_id = ? ORDER BY created_at DESC",
            (browser_id,),
        )
        return [UserBot.model_validate(dict(row)) for row in rows]

    async def find_user_bot(self, browser_id: str, url: str) -> UserBot | None:
        row = await self._fetchone(
            "SELECT * FROM user_bots WHERE browser_id = ? AND url = ?",
            (browser_id, url),
        )
        return UserBot.model_validate(dict(row)) if row else None

    async def add_user_bot(self, bot: UserBot) -> UserBot:
        await self._execute("""
            INSERT INTO user_bots (
                id, browser_id, name, description, type, url, repo_name, slug,
                created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            bot.id, bot.browser_id, bot.name, bot.description, bot.type, bot.url,
            bot.repo_name, bot.slug, bot.created_at.isoformat(),
        ))
        return bot

    async def delete_user_bot(self, bot_id: str, browser_id: str) -> bool:
        changed = await self._execute(
            "DELETE FROM user_bots WHERE id = ? AND browser_id = ?",
            (bot_id, browser_id),
        )
        return changed > 0

    # ─── published sites ─────────────────────────────────────

    async def upsert_site(self, site: PublishedSite) -> tuple[PublishedSite, bool]:
        conn = await self._conn()
        now = _now_iso()
        async with self._connection_lock:
            cursor = await conn.execute(
                "SELECT * FROM published_sites WHERE slug = ?", (site.slug,)
            )
            existing = await cursor.fetchone()
            await cursor.close()

            if existing:
                wallet = site.wallet_address or existing["wallet_address"]
                await conn.execute("""
                    UPDATE published_sites SET html = ?, site_name = ?, template = ?,
                        description = ?, wallet_address = ?, updated_at = ?
                    WHERE id = ?
                """, (
                    site.html, site.site_name, site.template, site.description,
                    wallet, now, existing["id"],
                ))
                await conn.commit()
                stored = site.model_copy(update={
                    "id": existing["id"],
                    "wallet_address": wallet,
                    "created_at": datetime.fromisoformat(existing["created_at"]),
                    "updated_at": datetime.fromisoformat(now),
                })
                return stored, False

            await conn.execute("""
                INSERT INTO published_sites (
                    id, slug, html, site_name, template, description,
                    wallet_address, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                site.id, site.slug, site.html, site.site_name, site.template,
                site.description, site.wallet_address, site.created_at.isoformat(),
                site.updated_at.isoformat(),
            ))
            await conn.commit()
        return site, True

    async def get_site(self, slug: str) -> PublishedSite | None:
        row = await self._fetchone(
            "SELECT * FROM published_sites WHERE slug = ?", (slug,)
        )
        return PublishedSite.model_validate(dict(row)) if row else None

    # ─── projects ────────────────────────────────────────────

    async def subdomain_taken(self, subdomain: str) -> bool:
        row = await self._fetchone(
            "SELECT 1 FROM projects WHERE subdomain = ?", (subdomain,)
        )
        return row is not None

    async def create_project(self, project: Project) -> Project:
        await self._execute("""
            INSERT INTO projects (
                id, wallet_address, status, subdomain, token_draft, site_config,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            project.id,
            project.wallet_address,
            project.status.value,
            project.site_config.subdomain,
            project.token_draft.model_dump_json(),
            project.site_config.model_dump_json(),
            project.created_at.isoformat(),
            project.updated_at.isoformat(),
        ))
        return project

    async def get_project(self, project_id: str) -> Project | None:
        row = await self._fetchone(
            "SELECT * FROM projects WHERE id = ?", (project_id,)
        )
        if not row:
            return None
        return await self._load_project(row)

    async def get_project_by_subdomain(self, subdomain: str) -> Project | None:
        row = await self._fetchone(
            "SELECT * FROM projects WHERE subdomain = ?", (subdomain,)
        )
        if not row:
            return None
        return await self._load_project(row)

    async def list_projects(self, wallet: str) -> list[Project]:
        rows = await self._fetchall(
            "SELECT * FROM projects WHERE wallet_address = ? ORDER BY created_at DESC",
            (wallet,),
        )
        return [self._row_to_project(row) for row in rows]

    async def update_project_status(
        self, project_id: str, status: ProjectStatus
    ) -> None:
        await self._execute(
            "UPDATE projects SET status = ?, updated_at = ? WHERE id = ?",
            (status.value, _now_iso(), project_id),
        )

    async def update_site_sections(
        self, project_id: str, sections: list[SiteSection]
    ) -> None:
        await self._update_site_config(
            project_id, lambda config: config.model_copy(update={"sections": sections})
        )

    async def set_site_published(self, project_id: str, published: bool) -> None:
        await self._update_site_config(
            project_id,
            lambda config: config.model_copy(update={"published": published}),
        )

    async def _update_site_config(self, project_id: str, change: Any) -> None:
        conn = await self._conn()
        async with self._connection_lock:
            cursor = await conn.execute(
                "SELECT site_config FROM projects WHERE id = ?", (project_id,)
            )
            row = await cursor.fetchone()
            await cursor.close()
            if not row:
                return
            config = change(SiteConfig.model_validate_json(row["site_config"]))
            await conn.execute(
                "UPDATE projects SET site_config = ?, updated_at = ? WHERE id = ?",
                (config.model_dump_json(), _now_iso(), project_id),
            )
            await conn.commit()

    # ─── launch attempts and assets ──────────────────────────

    async def add_launch_attempt(self, attempt: LaunchAttempt) -> LaunchAttempt:
        await self._execute("""
            INSERT INTO launch_attempts (
                id, project_id, status, payload, tx_signature, mint_address,
                error_message, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            attempt.id, attempt.project_id, attempt.status.value,
            json.dumps(attempt.payload), attempt.tx_signature, attempt.mint_address,
            attempt.error_message, attempt.created_at.isoformat(),
        ))
        return attempt

    async def get_launch_attempt(self, attempt_id: str) -> LaunchAttempt | None:
        row = await self._fetchone(
            "SELECT * FROM launch_attempts WHERE id = ?", (attempt_id,)
        )
        return self._row_to_attempt(row) if row else None

    async def update_launch_attempt(self, attempt: LaunchAttempt) -> None:
        await self._execute("""
            UPDATE launch_attempts SET status = ?, tx_signature = ?,
                mint_address = ?, error_message = ?
            WHERE id = ?
        """, (
            attempt.status.value, attempt.tx_signature, attempt.mint_address,
            attempt.error_message, attempt.id,
        ))

    async def add_asset(self, asset: Asset) -> Asset:
        await self._execute("""
            INSERT INTO assets (
                id, project_id, type, filename, path, mime_type, size_bytes,
                created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            asset.id, asset.project_id, asset.type.value, asset.filename,
            asset.path, asset.mime_type, asset.size_bytes,
            asset.created_at.isoformat(),
        ))
        return asset

    # ─── audit ───────────────────────────────────────────────

    async def add_audit_entry(self, entry: AuditEntry) -> None:
        await self._execute("""
            INSERT INTO audit_log (
                id, project_id, wallet_address, action, details, ip, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            entry.id, entry.project_id, entry.wallet_address, entry.action,
            json.dumps(entry.details), entry.ip, entry.created_at.isoformat(),
        ))

    async def list_audit_entries(self, project_id: str) -> list[AuditEntry]:
        rows = await self._fetchall(
            "SELECT * FROM audit_log WHERE project_id = ? ORDER BY created_at",
            (project_id,),
        )
        return [
            AuditEntry.model_validate({**dict(row), "details": json.loads(row["details"])})
            for row in rows
        ]

    # ─── row mapping ─────────────────────────────────────────

    def _row_to_bot(self, row: aiosqlite.Row) -> BotRecord:
        data = dict(row)
        data["is_public"] = bool(data["is_public"])
        return BotRecord.model_validate(data)

    def _row_to_project(self, row: aiosqlite.Row) -> Project:
        return Project(
            id=row["id"],
            wallet_address=row["wallet_address"],
            status=ProjectStatus(row["status"]),
            token_draft=TokenDraft.model_validate_json(row["token_draft"]),
            site_config=SiteConfig.model_validate_json(row["site_config"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_attempt(self, row: aiosqlite.Row) -> LaunchAttempt:
        return LaunchAttempt.model_validate(
            {**dict(row), "payload": json.loads(row["payload"])}
        )

    async def _load_project(self, row: aiosqlite.Row) -> Project:
        project = self._row_to_project(row)
        asset_rows = await self._fetchall(
            "SELECT * FROM assets WHERE project_id = ? ORDER BY created_at",
            (project.id,),
        )
        attempt_rows = await self._fetchall(
            "SELECT * FROM launch_attempts WHERE project_id = ? "
            "ORDER BY created_at DESC LIMIT ?",
            (project.id, RECENT_LAUNCH_ATTEMPTS),
        )
        project.assets = [Asset.model_validate(dict(r)) for r in asset_rows]
        project.launch_attempts = [self._row_to_attempt(r) for r in attempt_rows]
        return project

"""Audit trail for project actions. Recording never breaks the caller."""

from __future__ import annotations

import logging
from typing import Any

from webai.storage.models import AuditEntry

logger = logging.getLogger(__name__)

PROJECT_CREATED = "PROJECT_CREATED"
SITE_REGENERATED = "SITE_REGENERATED"
SITE_PUBLISHED = "SITE_PUBLISHED"
SITE_UNPUBLISHED = "SITE_UNPUBLISHED"
LAUNCH_PREPARED = "LAUNCH_PREPARED"
LAUNCH_CONFIRMED = "LAUNCH_CONFIRMED"
LAUNCH_FAILED = "LAUNCH_FAILED"
ASSET_UPLOADED = "ASSET_UPLOADED"


async def log_audit(
    repo: Any,
    action: str,
    *,
    project_id: str | None = None,
    wallet_address: str | None = None,
    details: dict[str, Any] | None = None,
    ip: str | None = None,
) -> None:
    entry = AuditEntry(
        project_id=project_id,
        wallet_address=wallet_address,
        action=action,
        details=details or {},
        ip=ip,
    )
    try:
        await repo.add_audit_entry(entry)
    except Exception as e:
        logger.error(f"Audit log failed for {action}: {e}")

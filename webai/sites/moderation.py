"""Blocklist moderation for user-supplied token names and descriptions."""

from __future__ import annotations

from dataclasses import dataclass

BLOCKED_WORDS = (
    "scam",
    "rugpull",
    "rug pull",
    "ponzi",
    "hack",
    "steal",
    "fraud",
)


@dataclass(frozen=True)
class ModerationResult:
    ok: bool
    reason: str | None = None


def moderate_text(text: str) -> ModerationResult:
    lowered = text.lower()
    for word in BLOCKED_WORDS:
        if word in lowered:
            return ModerationResult(False, f'Blocked word detected: "{word}"')
    return ModerationResult(True)

"""
Landing page content for token projects.

Sections come from the model when it is reachable and answers with a valid
section list; otherwise a deterministic set built from the token draft is
used, so project creation never fails on the model.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import TypeAdapter, ValidationError

from webai.llm.exceptions import LLMError
from webai.llm.models import CompletionSettings, LLMMessage
from webai.storage.models import SiteSection, TokenDraft

logger = logging.getLogger(__name__)

SEO_DESCRIPTION_LENGTH = 160

_CODE_FENCE_START = re.compile(r"^```(?:json)?\n?")
_CODE_FENCE_END = re.compile(r"\n?```$")
_SECTIONS = TypeAdapter(list[SiteSection])


def build_sections_prompt(token: TokenDraft) -> str:
    links = "\n".join(
        f"- {label}: {value}"
        for label, value in (
            ("Website", token.website),
            ("Twitter", token.twitter),
            ("Telegram", token.telegram),
        )
        if value
    )
    return f"""You are a crypto marketing expert. Write landing page content for a new token launch.

Token details:
- Name: {token.name}
- Symbol: {token.symbol}
- Description: {token.description}
- Total Supply: {token.total_supply}
{links}

Produce a JSON array with these sections, in this order:
1. "hero": a catchy headline (max 80 chars) as title and a subtitle (max 200 chars) as content
2. "about": what makes the token unique (2-3 paragraphs separated by \\n)
3. "tokenomics": supply and distribution ideas
4. "roadmap": a 4-phase roadmap
5. "faq": 5 questions and answers
6. "socials": a call to action to join the community

Each object must be {{ "id": string, "type": string, "title": string, "content": string, "enabled": true, "order": number }}.

Return ONLY the JSON array, without markdown or code fences."""


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE_END.sub("", _CODE_FENCE_START.sub("", text.strip()))


def fallback_sections(token: TokenDraft) -> list[SiteSection]:
    name, symbol, supply = token.name, token.symbol, token.total_supply
    return [
        SiteSection(
            id="hero",
            type="hero",
            title=f"Welcome to {name}",
            content=(
                f"{symbol}: the next generation token built for the community. "
                "Join the revolution today."
            ),
            order=0,
        ),
        SiteSection(
            id="about", type="about", title=f"About {name}",
            content=token.description, order=1,
        ),
        SiteSection(
            id="tokenomics",
            type="tokenomics",
            title="Tokenomics",
            content=(
                f"Total Supply: {supply} {symbol}\nDecimals: {token.decimals}\n"
                "Fair launch on Pump.fun. No presale, no team allocation."
            ),
            order=2,
        ),
        SiteSection(
            id="roadmap",
            type="roadmap",
            title="Roadmap",
            content=(
                "Phase 1: Launch on Pump.fun & build community\n"
                "Phase 2: Website & social media growth\n"
                "Phase 3: DEX listings & partnerships\n"
                "Phase 4: Utility development & ecosystem expansion"
            ),
            order=3,
        ),
        SiteSection(
            id="faq",
            type="faq",
            title="FAQ",
            content=(
                f"Q: What is {name}?\nA: {token.description}\n\n"
                f"Q: Where can I buy {symbol}?\n"
                f"A: {symbol} launches on Pump.fun with fair distribution.\n\n"
                "Q: Is there a presale?\nA: No. 100% fair launch.\n\n"
                f"Q: What is the total supply?\nA: {supply} {symbol}"
            ),
            order=4,
        ),
        SiteSection(
            id="socials",
            type="socials",
            title="Join the Community",
            content=f"Follow us and be part of the {name} movement!",
            order=5,
        ),
    ]


def build_seo(token: TokenDraft) -> dict[str, str]:
    return {
        "title": f"{token.name} ({token.symbol})",
        "description": token.description[:SEO_DESCRIPTION_LENGTH],
    }


class SiteContentGenerator:
    """Generates landing page sections with the site completion settings."""

    def __init__(self, llm_client: Any, settings: CompletionSettings):
        self.llm_client = llm_client
        self.settings = settings

    async def generate_sections(self, token: TokenDraft) -> list[SiteSection]:
        messages = [LLMMessage.user(build_sections_prompt(token))]
        try:
            response = await self.llm_client.complete(messages, self.settings)
            sections = _SECTIONS.validate_python(
                json.loads(strip_code_fences(response.content or "[]"))
            )
        except (LLMError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Section generation failed, using fallback: {e}")
            return fallback_sections(token)

        if not sections:
            logger.warning("Model returned no sections, using fallback")
            return fallback_sections(token)
        return sections

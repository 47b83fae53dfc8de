"""HTML rendering of published token landing pages."""

from __future__ import annotations

import re
from datetime import UTC, datetime

from jinja2 import Environment, PackageLoader, select_autoescape

from webai.storage.models import Project, SiteSection, SiteTheme

_COLOR = re.compile(r"^#[0-9a-fA-F]{3,8}$")
_FONT = re.compile(r"^[\w\s-]{1,64}$")

# Security headers for rendered landing pages
SITE_CSP = "; ".join([
    "default-src 'self'",
    "script-src 'self' 'unsafe-inline'",
    "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
    "img-src 'self' data: https:",
    "font-src 'self' https://fonts.gstatic.com",
    "connect-src 'self'",
    "frame-ancestors 'none'",
    "base-uri 'self'",
    "form-action 'self'",
])

SITE_HEADERS = {
    "Content-Security-Policy": SITE_CSP,
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

_env = Environment(
    loader=PackageLoader("webai.sites", "templates"),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def safe_theme(theme: SiteTheme) -> SiteTheme:
    """Replace values that are not plain colours or font names with defaults."""
    defaults = SiteTheme()
    return SiteTheme(
        primary_color=_pick(_COLOR, theme.primary_color, defaults.primary_color),
        secondary_color=_pick(_COLOR, theme.secondary_color, defaults.secondary_color),
        background_color=_pick(
            _COLOR, theme.background_color, defaults.background_color
        ),
        text_color=_pick(_COLOR, theme.text_color, defaults.text_color),
        font_family=_pick(_FONT, theme.font_family, defaults.font_family),
    )


def _pick(pattern: re.Pattern[str], value: str, default: str) -> str:
    return value if pattern.match(value) else default


def social_links(project: Project) -> list[tuple[str, str]]:
    token = project.token_draft
    links = []
    if token.twitter:
        links.append((
            "Twitter",
            token.twitter if token.twitter.startswith("http")
            else f"https://twitter.com/{token.twitter.replace('@', '')}",
        ))
    if token.telegram:
        links.append((
            "Telegram",
            token.telegram if token.telegram.startswith("http")
            else f"https://t.me/{token.telegram}",
        ))
    if token.discord and token.discord.startswith("http"):
        links.append(("Discord", token.discord))
    if token.website:
        links.append(("Website", token.website))
    return links


def visible_sections(sections: list[SiteSection]) -> list[SiteSection]:
    return sorted((s for s in sections if s.enabled), key=lambda s: s.order)


def render_site(project: Project) -> str:
    site = project.site_config
    token = project.token_draft
    template = _env.get_template("landing.html")
    return template.render(
        token=token,
        theme=safe_theme(site.theme),
        template_id=site.template_id,
        sections=visible_sections(site.sections),
        seo_title=site.seo.get("title") or token.name,
        seo_description=site.seo.get("description") or token.description,
        links=social_links(project),
        logo=next((a.path for a in project.assets if a.type.value == "LOGO"), None),
        year=datetime.now(UTC).year,
    )

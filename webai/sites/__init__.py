"""
Token landing pages: content generation, theme presets, moderation and
HTML rendering.
"""

from .generator import SiteContentGenerator, build_seo, fallback_sections
from .moderation import moderate_text
from .renderer import SITE_HEADERS, render_site
from .themes import THEMES, theme_for_template

__all__ = [
    "SITE_HEADERS",
    "THEMES",
    "SiteContentGenerator",
    "build_seo",
    "fallback_sections",
    "moderate_text",
    "render_site",
    "theme_for_template",
]

"""Colour and font presets for the landing page templates."""

from __future__ import annotations

from webai.storage.models import SiteTheme

THEMES: dict[str, SiteTheme] = {
    "modern": SiteTheme(
        primary_color="#6366f1",
        secondary_color="#8b5cf6",
        background_color="#0f0f23",
        text_color="#ffffff",
        font_family="Inter",
    ),
    "minimal": SiteTheme(
        primary_color="#10b981",
        secondary_color="#34d399",
        background_color="#111827",
        text_color="#f9fafb",
        font_family="Inter",
    ),
    "neon": SiteTheme(
        primary_color="#f43f5e",
        secondary_color="#fb923c",
        background_color="#0a0a0a",
        text_color="#ffffff",
        font_family="Space Grotesk",
    ),
}


def theme_for_template(template_id: str) -> SiteTheme:
    """Unknown template ids fall back to the modern preset."""
    return THEMES.get(template_id, THEMES["modern"]).model_copy()

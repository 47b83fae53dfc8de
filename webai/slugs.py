"""URL-safe identifiers for published bots, sites and repositories."""

from __future__ import annotations

import re

from webai.errors import ValidationFailed

MIN_SLUG_LENGTH = 2
MAX_SITE_SLUG_LENGTH = 64

_INVALID_SLUG_CHARS = re.compile(r"[^a-z0-9-]")
_INVALID_REPO_CHARS = re.compile(r"[^a-z0-9\-_.]")
_HYPHEN_RUNS = re.compile(r"-+")


def normalize_slug(raw: str) -> str:
    """Lowercase, replace anything outside [a-z0-9-] with hyphens, collapse and trim them."""
    slug = _INVALID_SLUG_CHARS.sub("-", raw.strip().lower())
    slug = _HYPHEN_RUNS.sub("-", slug)
    return slug.strip("-")


def sanitize_slug(raw: str | None, max_length: int | None = None) -> str:
    """
    Normalize a user-supplied slug and reject unusable results.

    >>> sanitize_slug("My Bot!!")
    'my-bot'
    >>> sanitize_slug("--a--b--")
    'a-b'
    """
    slug = normalize_slug(raw or "")
    if len(slug) < MIN_SLUG_LENGTH:
        raise ValidationFailed(f"Slug must be at least {MIN_SLUG_LENGTH} characters")
    if max_length is not None and len(slug) > max_length:
        raise ValidationFailed(f"Slug must be under {max_length} characters")
    return slug


def sanitize_repo_name(raw: str) -> str:
    """GitHub allows dots and underscores in repository names as well."""
    name = _INVALID_REPO_CHARS.sub("-", raw.strip().lower())
    name = _HYPHEN_RUNS.sub("-", name).strip("-")
    if not name:
        raise ValidationFailed("Repository name is required")
    return name

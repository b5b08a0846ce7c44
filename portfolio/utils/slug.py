# portfolio/utils/slug.py
import re

from portfolio.core.errors import ValidationError

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def normalize_slug(raw: str) -> str:
    """
    Canonical URL-safe slug: lowercase, runs of anything outside [a-z0-9]
    collapsed to a single dash, no leading/trailing dash.

    >>> normalize_slug("  Mutual Funds (India) ")
    'mutual-funds-india'
    """
    slug = _NON_SLUG_CHARS.sub("-", (raw or "").lower().strip())
    return slug.strip("-")


def require_slug(raw: str) -> str:
    slug = normalize_slug(raw)
    if not slug:
        raise ValidationError("Invalid slug. Please provide a valid category name or slug.")
    return slug


def numbered_slug(slug: str, counter: int) -> str:
    return f"{slug}-{counter}"

"""Small string helpers shared by the locator, namer and diagnostics."""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(value: str, fallback: str = "unknown") -> str:
    """Generate a filesystem-friendly token using ASCII characters only."""
    normalized = unicodedata.normalize("NFKD", value)
    normalized = normalized.encode("ascii", "ignore").decode("ascii")
    normalized = normalized.lower()
    normalized = SLUG_PATTERN.sub("-", normalized).strip("-")
    return normalized or fallback


def fold(value: Optional[str]) -> str:
    """Case- and width-insensitive form of ``value`` for substring tests."""
    if not value:
        return ""
    return unicodedata.normalize("NFKC", value).casefold()


def truncate(value: Optional[str], limit: int) -> str:
    if not value:
        return ""
    if len(value) <= limit:
        return value
    return value[:limit] + "..."

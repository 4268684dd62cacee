"""Text cleaning helpers for scraped Spanish content."""

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str | None) -> str:
    """Collapse every whitespace run (including NBSP and newlines) to one space."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_text(text: str | None) -> str:
    """Normalize Unicode to NFC and collapse whitespace.

    Args:
        text: Raw text extracted from HTML

    Returns:
        Cleaned text, empty string for None
    """
    if not text:
        return ""
    return normalize_whitespace(unicodedata.normalize("NFC", text))


def truncate(text: str, max_length: int = 50, suffix: str = "...") -> str:
    """Shorten text for log output."""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)].rstrip() + suffix

"""Shared text, date and URL helpers."""

from taurobot.utils.date_parser import parse_spanish_date, parse_spanish_month
from taurobot.utils.text import clean_text, normalize_whitespace, truncate
from taurobot.utils.urls import extract_domain, is_valid_url, resolve_url

__all__ = [
    "clean_text",
    "extract_domain",
    "is_valid_url",
    "normalize_whitespace",
    "parse_spanish_date",
    "parse_spanish_month",
    "resolve_url",
    "truncate",
]

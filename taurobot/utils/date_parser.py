"""Spanish date parsing utilities."""

import re
from datetime import date

from dateutil import parser as dateutil_parser

# Spanish month names mapping
SPANISH_MONTHS = {
    "enero": 1,
    "ene": 1,
    "febrero": 2,
    "feb": 2,
    "marzo": 3,
    "mar": 3,
    "abril": 4,
    "abr": 4,
    "mayo": 5,
    "may": 5,
    "junio": 6,
    "jun": 6,
    "julio": 7,
    "jul": 7,
    "agosto": 8,
    "ago": 8,
    "septiembre": 9,
    "setiembre": 9,
    "sep": 9,
    "sept": 9,
    "octubre": 10,
    "oct": 10,
    "noviembre": 11,
    "nov": 11,
    "diciembre": 12,
    "dic": 12,
}

WEEKDAYS = r"(?:Lunes|Martes|Mi[eé]rcoles|Jueves|Viernes|S[aá]bado|Domingo)"

# Patterns used to pull a date out of a longer text blob, in priority order:
# weekday long form, slash-delimited numeric, plain long form.
DATE_SUBSTRING_PATTERNS = [
    re.compile(rf"({WEEKDAYS},? \d{{1,2}} de \w+ de \d{{4}})", re.IGNORECASE),
    re.compile(r"(\d{1,2}/\d{1,2}/\d{2,4})"),
    re.compile(r"(\d{1,2} de \w+ de \d{4})", re.IGNORECASE),
]


def parse_spanish_month(month_str: str) -> int | None:
    """Parse Spanish month name to month number.

    Args:
        month_str: Month name in Spanish (e.g., "enero", "ene")

    Returns:
        Month number (1-12) or None if not recognized
    """
    return SPANISH_MONTHS.get(month_str.lower().strip())


def find_date_substring(text: str | None) -> str | None:
    """Return the first date-looking substring of ``text``, or None."""
    if not text:
        return None
    for pattern in DATE_SUBSTRING_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def parse_spanish_date(date_str: str | None) -> date | None:
    """Parse a Spanish date string into a date object.

    Handles:
    - "Viernes 26 de diciembre de 2025" (weekday optional, trailing time ignored)
    - "01/01/2026 00:00"
    - "2026-01-01"

    Args:
        date_str: Date string in Spanish

    Returns:
        date object or None if parsing failed (e.g. "Por confirmar")
    """
    if not date_str:
        return None

    date_str = date_str.strip()

    # "26 de diciembre de 2025"
    match = re.search(r"(\d{1,2})\s+de\s+([a-záéíóú]+)\s+de\s+(\d{4})", date_str, re.IGNORECASE)
    if match:
        month = parse_spanish_month(match.group(2))
        if month:
            try:
                return date(int(match.group(3)), month, int(match.group(1)))
            except ValueError:
                return None

    # "01/01/2026"
    match = re.search(r"(\d{1,2})/(\d{1,2})/(\d{4})", date_str)
    if match:
        try:
            return date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
        except ValueError:
            return None

    # ISO and other numeric forms
    if not re.search(r"\d{4}", date_str):
        return None
    try:
        return dateutil_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None

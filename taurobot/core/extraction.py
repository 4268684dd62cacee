"""Shared HTML extraction primitives.

Source sites redesign their markup without notice, so extractors never rely
on a single selector. They describe an ordered list of strategies (data, not
nested conditionals) and take the first one that finds something:

    TABLE_CASCADE = [
        Heuristic("table.listadoTabla", HEADER_KEYWORDS),
        Heuristic("table", HEADER_KEYWORDS),
        FirstPopulatedTable(),
    ]
    table = select_container(soup, TABLE_CASCADE)
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar, Generic

from bs4 import BeautifulSoup, Tag

from taurobot.core.exceptions import ParseError
from taurobot.core.models import DATE_NOT_SPECIFIED, Record, RecordT
from taurobot.logging import get_logger
from taurobot.utils.date_parser import find_date_substring
from taurobot.utils.text import clean_text, normalize_whitespace

logger = get_logger(__name__)

_MARKUP_RE = re.compile(r"<\s*[a-zA-Z!/?]")
_LEADING_INT_RE = re.compile(r"-?\d+")

BLOCK_MARKERS = ("Access Denied", "Acceso Denegado", "blocked")


# ============================================================
# PARSING
# ============================================================


def parse_markup(html: str | bytes, source: str | None = None) -> BeautifulSoup:
    """Parse HTML, raising ``ParseError`` only if the input is not markup at all."""
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")
    if not isinstance(html, str):
        raise ParseError(f"Expected HTML text, got {type(html).__name__}", source=source)
    if not _MARKUP_RE.search(html):
        raise ParseError("Input contains no markup", raw_data=html, source=source)
    return BeautifulSoup(html, "html.parser")


def looks_blocked(html: str) -> bool:
    """True when the page looks like an anti-bot / access-denied page."""
    return any(marker in html for marker in BLOCK_MARKERS)


# ============================================================
# SELECTOR STRATEGIES
# ============================================================


@dataclass(frozen=True)
class Structural:
    """Every element matching a CSS selector."""

    selector: str
    kind: ClassVar[str] = "structural"

    def find(self, soup: Tag) -> list[Tag]:
        return soup.select(self.selector)


@dataclass(frozen=True)
class Heuristic:
    """Elements matching a CSS selector whose text matches ``pattern``."""

    selector: str
    pattern: re.Pattern[str]
    kind: ClassVar[str] = "heuristic"

    def find(self, soup: Tag) -> list[Tag]:
        return [el for el in soup.select(self.selector) if self.pattern.search(el.get_text(" "))]


@dataclass(frozen=True)
class FirstPopulatedTable:
    """Tables that have at least one body row."""

    kind: ClassVar[str] = "fallback"

    def find(self, soup: Tag) -> list[Tag]:
        return [table for table in soup.select("table") if table.select("tbody tr")]


SelectorStrategy = Structural | Heuristic | FirstPopulatedTable


def select_items(soup: Tag, strategies: Sequence[SelectorStrategy]) -> list[Tag]:
    """Elements of the first strategy that matches anything, else []."""
    for strategy in strategies:
        found = strategy.find(soup)
        if found:
            logger.debug(
                "selector_matched",
                kind=strategy.kind,
                selector=getattr(strategy, "selector", "table"),
                count=len(found),
            )
            return found
    return []


def select_container(soup: Tag, strategies: Sequence[SelectorStrategy]) -> Tag | None:
    """First element of the first matching strategy, else None."""
    found = select_items(soup, strategies)
    return found[0] if found else None


# ============================================================
# TABLE-LIKE MARKUP
# ============================================================


def find_rows(container: Tag) -> list[Tag]:
    """Rows of a table, a body-less table, or an ARIA ``role=table`` structure."""
    rows = container.select("tbody tr")
    if not rows:
        rows = container.select("tr")
    if not rows:
        rows = [row for row in container.select('[role="row"]') if row.select('[role="cell"]')]
    return rows


def find_cells(row: Tag) -> list[Tag]:
    """Cells of a row: ``<td>``, then ``role=cell``, then direct div/span children."""
    cells = row.find_all("td")
    if not cells:
        cells = row.select('[role="cell"]')
    if not cells:
        cells = row.find_all(["div", "span"], recursive=False)
    return list(cells)


def cell_text(cells: Sequence[Tag], index: int) -> str:
    if index >= len(cells):
        return ""
    return clean_text(cells[index].get_text(" "))


def parse_int(text: str | None) -> int:
    """Integer from noisy cell text: ``"3 orejas"`` -> 3, ``""`` -> 0."""
    cleaned = re.sub(r"[^0-9\-]", "", text or "")
    match = _LEADING_INT_RE.search(cleaned)
    return int(match.group(0)) if match else 0


def parse_positive_int(text: str | None) -> int | None:
    """Integer if ``text`` starts with a positive number, else None."""
    match = re.match(r"\s*(\d+)", text or "")
    if not match:
        return None
    value = int(match.group(1))
    return value if value > 0 else None


# ============================================================
# TEXT BLOBS
# ============================================================


def split_date(text: str) -> tuple[str, str]:
    """Split a combined text blob into ``(date, rest)``.

    The date is the first match of the pattern cascade, or the
    "not specified" sentinel; ``rest`` is the text without it.
    """
    found = find_date_substring(text)
    if found is None:
        return DATE_NOT_SPECIFIED, normalize_whitespace(text)
    return found, normalize_whitespace(text.replace(found, "", 1))


# ============================================================
# EXTRACTOR BASE
# ============================================================


class BaseExtractor(ABC, Generic[RecordT]):
    """Turns the HTML of one source into an ordered list of records.

    ``extract`` never raises for "nothing found"; it only raises
    ``ParseError`` when the input is not markup.
    """

    source_key: str = ""
    base_url: str = ""
    record_model: type[Record] = Record

    def __init__(self, base_url: str | None = None) -> None:
        if base_url:
            self.base_url = base_url
        self.logger = get_logger(f"extractor.{self.source_key}")

    def extract(self, html: str | bytes) -> list[RecordT]:
        soup = parse_markup(html, source=self.source_key)
        records = self.parse(soup)
        self.logger.info("extraction_done", source=self.source_key, count=len(records))
        return records

    @abstractmethod
    def parse(self, soup: BeautifulSoup) -> list[RecordT]:
        """Produce records from an already parsed document."""

"""Desde el Callejón - festival chronicles.

Source: https://desdelcallejon.com/cronicas-de-festejos/
Fetch: plain HTTP (Elementor posts grid)
"""

from bs4 import BeautifulSoup, Tag

from taurobot.adapters import register_adapter
from taurobot.core.extraction import BaseExtractor, Structural, select_items
from taurobot.core.models import Chronicle
from taurobot.utils.text import clean_text
from taurobot.utils.urls import resolve_url

POST_CASCADE = [
    Structural("article.elementor-post"),
    Structural("article.post"),
    Structural("article"),
]
TITLE_SELECTORS = ("h3.elementor-post__title a", ".entry-title a", "h2 a", "h3 a")
EXCERPT_SELECTORS = ("div.elementor-post__excerpt p", ".entry-summary p", "p")


def _first(post: Tag, selectors: tuple[str, ...]) -> Tag | None:
    for selector in selectors:
        element = post.select_one(selector)
        if element is not None:
            return element
    return None


@register_adapter("desdelcallejon")
class DesdelCallejonExtractor(BaseExtractor[Chronicle]):
    """Extractor for the chronicles listing."""

    base_url = "https://desdelcallejon.com/cronicas-de-festejos/"
    record_model = Chronicle

    def parse(self, soup: BeautifulSoup) -> list[Chronicle]:
        chronicles: list[Chronicle] = []

        for post in select_items(soup, POST_CASCADE):
            anchor = _first(post, TITLE_SELECTORS)
            excerpt = _first(post, EXCERPT_SELECTORS)
            if anchor is None or excerpt is None:
                continue

            title = clean_text(anchor.get_text(" "))
            href = anchor.get("href")
            url = resolve_url(href, self.base_url) if isinstance(href, str) else None
            if not title or not url:
                continue

            chronicles.append(
                Chronicle(title=title, url=url, excerpt=clean_text(excerpt.get_text(" ")))
            )

        return chronicles

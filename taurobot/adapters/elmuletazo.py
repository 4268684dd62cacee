"""El Muletazo - bullfights broadcast on television.

Source: https://elmuletazo.com/agenda-de-toros-en-television/
Fetch: plain HTTP (WordPress, server-rendered)

Each broadcast is a justified paragraph whose text mixes the date and the
description ("Viernes 26 de diciembre de 2025 - Corrida ... en directo"). The
paragraph right after it often only holds the "PULSE AQUÍ" link, so links are
collected from both.
"""

from bs4 import BeautifulSoup, Tag

from taurobot.adapters import register_adapter
from taurobot.core.extraction import BaseExtractor, Structural, select_items, split_date
from taurobot.core.models import (
    DATE_NOT_SPECIFIED,
    DESCRIPTION_NOT_AVAILABLE,
    EventLink,
    TelevisedEvent,
)
from taurobot.utils.text import clean_text, truncate
from taurobot.utils.urls import resolve_url

MIN_DESCRIPTION_LENGTH = 10

PARAGRAPH_CASCADE = [
    Structural("p.has-text-align-justify"),
    Structural(".entry-content > p"),
    Structural("article p"),
]


@register_adapter("elmuletazo")
class ElMuletazoExtractor(BaseExtractor[TelevisedEvent]):
    """Extractor for the TV broadcast listing."""

    base_url = "https://elmuletazo.com/agenda-de-toros-en-television/"
    record_model = TelevisedEvent

    def parse(self, soup: BeautifulSoup) -> list[TelevisedEvent]:
        events: list[TelevisedEvent] = []

        for paragraph in select_items(soup, PARAGRAPH_CASCADE):
            text = clean_text(paragraph.get_text(" "))
            date, description = split_date(text)
            links = self._collect_links(paragraph)

            # Needs a date, a link or a meaningful description
            if date == DATE_NOT_SPECIFIED and not links and len(description) < MIN_DESCRIPTION_LENGTH:
                continue

            self.logger.debug(
                "broadcast_block",
                date=date,
                description=truncate(description),
                links=len(links),
            )
            events.append(
                TelevisedEvent(
                    date=date,
                    description=description or DESCRIPTION_NOT_AVAILABLE,
                    links=tuple(links),
                )
            )

        return events

    def _collect_links(self, paragraph: Tag) -> list[EventLink]:
        blocks = [paragraph]
        sibling = paragraph.find_next_sibling()
        if isinstance(sibling, Tag) and sibling.name == "p":
            blocks.append(sibling)

        links: list[EventLink] = []
        seen: set[str] = set()
        for block in blocks:
            for anchor in block.find_all("a"):
                href = anchor.get("href") or ""
                url = resolve_url(href if isinstance(href, str) else "", self.base_url)
                if url is None:
                    if href:
                        self.logger.debug("invalid_link_skipped", href=href)
                    continue
                if url in seen:
                    continue
                seen.add(url)
                label = clean_text(anchor.get_text(" ")) or url
                links.append(EventLink(label=label, url=url))
        return links

"""Servitoro - taurine calendar.

Source: https://www.servitoro.com/es/calendario-taurino
Fetch: headless (cards are rendered client-side, "Ver más" pagination)
"""

from bs4 import BeautifulSoup, Tag

from taurobot.adapters import register_adapter
from taurobot.core.extraction import BaseExtractor, Structural, select_items
from taurobot.core.models import CATEGORY_NOT_SPECIFIED, CITY_NOT_SPECIFIED, CalendarEvent
from taurobot.utils.text import clean_text
from taurobot.utils.urls import resolve_url

CARD_CASCADE = [
    Structural(".card.evento"),
    Structural("article.evento"),
    Structural(".evento"),
]


def _text(card: Tag, selector: str) -> str:
    element = card.select_one(selector)
    return clean_text(element.get_text(" ")) if element else ""


@register_adapter("servitoro")
class ServitoroExtractor(BaseExtractor[CalendarEvent]):
    """Extractor for the calendar cards."""

    base_url = "https://www.servitoro.com/es/calendario-taurino"
    record_model = CalendarEvent

    def parse(self, soup: BeautifulSoup) -> list[CalendarEvent]:
        events: list[CalendarEvent] = []

        for card in select_items(soup, CARD_CASCADE):
            body = card.select_one(".card-body") or card

            date = _text(body, ".fecha")
            name = _text(body, ".nombre-evento")
            if not date or not name:
                continue

            events.append(
                CalendarEvent(
                    date=date,
                    city=self._city(body) or CITY_NOT_SPECIFIED,
                    name=name,
                    category=_text(body, ".evento-cat") or CATEGORY_NOT_SPECIFIED,
                    location=_text(body, ".location"),
                    link=self._link(body),
                )
            )

        self.logger.info("servitoro_cards_parsed", events=len(events))
        return events

    def _city(self, body: Tag) -> str:
        element = body.select_one(".ciudad")
        if element is None:
            return ""
        name = element.get("data-nombre-ciudad")
        if isinstance(name, str) and name.strip():
            return name.strip()
        return clean_text(element.get_text(" "))

    def _link(self, body: Tag) -> str | None:
        anchor = body.select_one("a.reservar")
        href = anchor.get("href") if anchor else None
        if not isinstance(href, str):
            return None
        return resolve_url(href, self.base_url)

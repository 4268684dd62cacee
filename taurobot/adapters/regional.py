"""Hand-maintained regional event files (not scraped).

- ``america-events.json``: object keyed by city, each value a list of events
- ``sevilla-events.json``: a list of events, or an object of lists

Files are read lazily on first use and cached for the life of the reader. A
missing or unreadable file behaves as an empty one.
"""

from datetime import date
from typing import Any

from pydantic import ValidationError

from taurobot.core.models import RegionalEvent
from taurobot.core.snapshot_store import SnapshotStore
from taurobot.logging import get_logger
from taurobot.utils.date_parser import parse_spanish_date

logger = get_logger(__name__)

AMERICA_EVENTS = "america-events"
SEVILLA_EVENTS = "sevilla-events"


class RegionalEventsReader:
    """Read-only access to one regional events file."""

    def __init__(self, store: SnapshotStore, name: str) -> None:
        self.store = store
        self.name = name
        self._by_city: dict[str, list[RegionalEvent]] | None = None
        self._events: list[RegionalEvent] = []

    async def _ensure_loaded(self) -> None:
        if self._by_city is not None:
            return

        raw = await self.store.load_raw(self.name)
        self._by_city = {}
        self._events = []

        if isinstance(raw, list):
            self._events = self._validate(raw)
        elif isinstance(raw, dict):
            for city, items in raw.items():
                if not isinstance(items, list):
                    logger.warning("regional_city_not_a_list", file=self.name, city=city)
                    continue
                events = self._validate(items)
                self._by_city[city] = events
                self._events.extend(events)
        elif raw is not None:
            logger.warning("regional_file_wrong_shape", file=self.name, type=type(raw).__name__)

        logger.info(
            "regional_events_loaded",
            file=self.name,
            cities=len(self._by_city),
            events=len(self._events),
        )

    def _validate(self, items: list[Any]) -> list[RegionalEvent]:
        events = []
        for item in items:
            try:
                events.append(RegionalEvent.model_validate(item))
            except ValidationError as e:
                logger.warning("regional_event_invalid", file=self.name, errors=e.error_count())
        return events

    async def cities(self) -> list[str]:
        await self._ensure_loaded()
        return list(self._by_city or {})

    async def events_for_city(self, city: str) -> list[RegionalEvent] | None:
        """Events of the first city whose name contains ``city`` (case-insensitive).

        Returns:
            The city's events, or None if no city matches
        """
        await self._ensure_loaded()
        needle = city.lower().strip()
        for key, events in (self._by_city or {}).items():
            if needle in key.lower():
                return list(events)
        return None

    async def events(self) -> list[RegionalEvent]:
        """Every event in file order."""
        await self._ensure_loaded()
        return list(self._events)

    async def upcoming(self, today: date | None = None) -> list[RegionalEvent]:
        """Events from ``today`` on; events with an unparseable date are kept."""
        today = today or date.today()
        upcoming = []
        for event in await self.events():
            event_date = parse_spanish_date(event.date)
            # "Por confirmar" and the like stay listed
            if event_date is None or event_date >= today:
                upcoming.append(event)
        return upcoming

    def reload(self) -> None:
        """Forget the cached file contents; the next read hits disk."""
        self._by_city = None
        self._events = []

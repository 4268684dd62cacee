"""Per-source scraping configuration.

Every scraped site is described by one ``SourceConfig``: where it lives, how
it has to be fetched, how long its results stay fresh and what to do with the
on-disk snapshot when a refresh fails. Sources are registered at import time.

Usage:
    from taurobot.config.sources import SourceRegistry

    source = SourceRegistry.get("servitoro")
    scheduled = SourceRegistry.scheduled()
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from taurobot.core.exceptions import SourceNotFoundError
from taurobot.core.retry import RetryConfig


class FetchMode(str, Enum):
    """How the page HTML is obtained."""

    HTTP = "http"  # Server-rendered page, plain GET is enough
    HEADLESS = "headless"  # JS-rendered or anti-bot protected page


class SessionMode(str, Enum):
    """Browser lifecycle for headless sources."""

    FRESH = "fresh"  # New browser + temp profile per scrape
    PERSISTENT = "persistent"  # One long-lived browser, short-lived pages


class SnapshotFailurePolicy(str, Enum):
    """What happens to the snapshot file when a refresh yields nothing."""

    WRITE_EMPTY = "write_empty"  # Persist [] so readers see "no data"
    KEEP_LAST_GOOD = "keep_last_good"  # Leave the previous snapshot in place


DEFAULT_BLOCKED_RESOURCES = ("image", "stylesheet", "font")


@dataclass(frozen=True)
class HeadlessOptions:
    """Browser-driving options for a headless source."""

    session_mode: SessionMode = SessionMode.FRESH
    wait_until: str = "networkidle"
    navigation_timeout_ms: int | None = None  # None -> settings default
    settle_ms: int = 0  # Fixed pause after navigation for late JS
    stealth: bool = False
    extra_headers: dict[str, str] = field(default_factory=dict)
    blocked_resource_types: tuple[str, ...] = DEFAULT_BLOCKED_RESOURCES
    cookie_button_selector: str | None = None
    wait_for_selector: str | None = None
    wait_for_selector_timeout_ms: int = 30_000
    load_more_selector: str | None = None
    load_more_item_selector: str | None = None
    load_more_timeout_ms: int = 15_000
    max_load_more_clicks: int = 100


@dataclass
class SourceConfig:
    """Configuration for one scraped source."""

    key: str
    name: str
    url: str
    fetch_mode: FetchMode
    ttl: timedelta
    snapshot_name: str
    failure_policy: SnapshotFailurePolicy = SnapshotFailurePolicy.WRITE_EMPTY
    headless: HeadlessOptions | None = None
    # Serve the on-disk snapshot before scraping (expensive sources)
    snapshot_first: bool = False
    # Cron expression for the scheduled refresh, None = on demand only
    schedule_cron: str | None = None
    min_schedule_interval: timedelta | None = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.fetch_mode is FetchMode.HEADLESS and self.headless is None:
            self.headless = HeadlessOptions()

    def __hash__(self) -> int:
        return hash(self.key)

    @property
    def is_scheduled(self) -> bool:
        return self.schedule_cron is not None


class SourceRegistry:
    """Registry of every configured source, keyed by source key."""

    _sources: dict[str, SourceConfig] = {}

    @classmethod
    def register(cls, config: SourceConfig) -> SourceConfig:
        cls._sources[config.key] = config
        return config

    @classmethod
    def get(cls, key: str) -> SourceConfig | None:
        return cls._sources.get(key)

    @classmethod
    def require(cls, key: str) -> SourceConfig:
        """Get a source or raise ``SourceNotFoundError``."""
        config = cls._sources.get(key)
        if config is None:
            raise SourceNotFoundError(key, available=cls.keys())
        return config

    @classmethod
    def all(cls, active_only: bool = True) -> list[SourceConfig]:
        return [s for s in cls._sources.values() if s.is_active or not active_only]

    @classmethod
    def keys(cls) -> list[str]:
        return list(cls._sources.keys())

    @classmethod
    def scheduled(cls) -> list[SourceConfig]:
        return [s for s in cls.all() if s.is_scheduled]


# ============================================================
# SOURCES
# ============================================================

SourceRegistry.register(
    SourceConfig(
        key="elmuletazo",
        name="El Muletazo - Toros en televisión",
        url="https://elmuletazo.com/agenda-de-toros-en-television/",
        fetch_mode=FetchMode.HTTP,
        ttl=timedelta(minutes=60),
        snapshot_name="transmisiones",
    )
)

SourceRegistry.register(
    SourceConfig(
        key="servitoro",
        name="Servitoro - Calendario taurino",
        url="https://www.servitoro.com/es/calendario-taurino",
        fetch_mode=FetchMode.HEADLESS,
        ttl=timedelta(minutes=60),
        snapshot_name="servitoro-events",
        # Calendar is refreshed often; an empty scrape must not wipe it
        failure_policy=SnapshotFailurePolicy.KEEP_LAST_GOOD,
        headless=HeadlessOptions(
            session_mode=SessionMode.PERSISTENT,
            wait_until="networkidle",
            wait_for_selector=".card.evento",
            load_more_selector='xpath=//a[contains(., "Ver más")]',
            load_more_item_selector=".card.evento",
        ),
    )
)

SourceRegistry.register(
    SourceConfig(
        key="mundotoro",
        name="Mundotoro - Escalafón de toreros",
        url="https://www.mundotoro.com/escalafon-toreros",
        fetch_mode=FetchMode.HEADLESS,
        ttl=timedelta(hours=12),
        snapshot_name="escalafon",
        snapshot_first=True,
        schedule_cron="0 3 * * sun",  # Sundays 03:00; APScheduler counts weekdays from Monday
        min_schedule_interval=timedelta(days=15),
        retry=RetryConfig(max_attempts=1),
        headless=HeadlessOptions(
            session_mode=SessionMode.FRESH,
            wait_until="domcontentloaded",
            settle_ms=5_000,
            stealth=True,
            blocked_resource_types=(),
            cookie_button_selector="button.cmplz-btn.cmplz-accept",
            extra_headers={
                "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
                "Upgrade-Insecure-Requests": "1",
                "Sec-Fetch-Dest": "document",
                "Sec-Fetch-Mode": "navigate",
                "Sec-Fetch-Site": "none",
                "Sec-Fetch-User": "?1",
                "Cache-Control": "max-age=0",
            },
        ),
    )
)

SourceRegistry.register(
    SourceConfig(
        key="desdelcallejon",
        name="Desde el Callejón - Crónicas de festejos",
        url="https://desdelcallejon.com/cronicas-de-festejos/",
        fetch_mode=FetchMode.HTTP,
        ttl=timedelta(minutes=30),
        snapshot_name="cronicas",
    )
)

"""Composition root: one cache + orchestrator per source, shared I/O resources.

Usage:
    async with ScraperService() as service:
        ranking = await service.get_or_refresh("mundotoro")
        calendar = await service.force_refresh("servitoro")
        upcoming = await service.sevilla.upcoming()
"""

import asyncio
from datetime import datetime
from typing import Any

from taurobot.adapters import get_adapter
from taurobot.adapters.regional import AMERICA_EVENTS, SEVILLA_EVENTS, RegionalEventsReader
from taurobot.config.settings import Settings, get_settings
from taurobot.config.sources import SourceConfig, SourceRegistry
from taurobot.core.browser import HeadlessSessionManager
from taurobot.core.cache import CacheState, Clock, FreshnessCache, utc_now
from taurobot.core.exceptions import ConfigurationError, SourceNotFoundError
from taurobot.core.fetcher import HtmlFetcher
from taurobot.core.models import Record, RefreshOutcome
from taurobot.core.orchestrator import RefreshOrchestrator
from taurobot.core.scraper_config import HeadersConfig
from taurobot.core.snapshot_store import SnapshotStore
from taurobot.logging import get_logger

logger = get_logger(__name__)


class ScraperService:
    """Entry point used by consumers (bot handlers, CLI, scheduler).

    Every source gets its own ``FreshnessCache`` and ``RefreshOrchestrator``,
    built once here and never looked up globally.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        sources: list[SourceConfig] | None = None,
        fetcher: HtmlFetcher | None = None,
        browser: HeadlessSessionManager | None = None,
        store: SnapshotStore | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store or SnapshotStore(self.settings.data_dir)
        headers = HeadersConfig(
            rotate_user_agent=self.settings.rotate_user_agent,
            custom_user_agent=self.settings.user_agent,
        )
        self.fetcher = fetcher or HtmlFetcher(
            timeout=self.settings.request_timeout,
            headers=headers,
        )
        self.browser = browser or HeadlessSessionManager(
            tmp_dir=self.settings.tmp_dir,
            headless=self.settings.headless,
            executable_path=self.settings.browser_executable_path,
            launch_timeout_ms=self.settings.browser_launch_timeout_ms,
            navigation_timeout_ms=self.settings.navigation_timeout_ms,
            user_agent=headers.user_agent(),
        )

        self.orchestrators: dict[str, RefreshOrchestrator[Any]] = {}
        self.caches: dict[str, FreshnessCache[Any]] = {}
        for source in sources if sources is not None else SourceRegistry.all():
            self._wire(source, clock)

        self.america = RegionalEventsReader(self.store, AMERICA_EVENTS)
        self.sevilla = RegionalEventsReader(self.store, SEVILLA_EVENTS)

    def _wire(self, source: SourceConfig, clock: Clock) -> None:
        extractor_class = get_adapter(source.key)
        if extractor_class is None:
            raise ConfigurationError("No extractor registered", source=source.key)

        orchestrator = RefreshOrchestrator(
            source=source,
            extractor=extractor_class(base_url=source.url),
            store=self.store,
            fetcher=self.fetcher,
            browser=self.browser,
            settings=self.settings,
        )
        self.orchestrators[source.key] = orchestrator
        # Snapshot-first sources read their file before scraping
        self.caches[source.key] = FreshnessCache(
            key=source.key,
            ttl=source.ttl,
            loader=orchestrator.load,
            clock=clock,
        )

    # ==========================================
    # Consumer API
    # ==========================================

    def keys(self) -> list[str]:
        return list(self.orchestrators)

    def orchestrator(self, key: str) -> RefreshOrchestrator[Any]:
        try:
            return self.orchestrators[key]
        except KeyError:
            raise SourceNotFoundError(key, available=self.keys()) from None

    def cache(self, key: str) -> FreshnessCache[Any]:
        self.orchestrator(key)
        return self.caches[key]

    def state(self, key: str) -> CacheState:
        return self.cache(key).state

    async def get_or_refresh(self, key: str, timeout: float | None = None) -> list[Record]:
        """Records for ``key``; an empty list means "no data right now".

        Waits at most ``timeout`` seconds (settings default). On timeout the
        refresh keeps running in the background and the caller gets whatever
        stale data is cached.
        """
        cache = self.cache(key)
        timeout = timeout if timeout is not None else self.settings.consumer_timeout
        try:
            return await asyncio.wait_for(cache.get_or_refresh(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("consumer_wait_timeout", source=key, timeout=timeout)
            return list(cache.entry.data) if cache.entry else []

    async def force_refresh(self, key: str) -> list[Record]:
        """Clear the cache and scrape now. Never raises for a failed scrape.

        Returns:
            The new records, or [] if the refresh did not succeed
        """
        cache = self.cache(key)
        cache.clear_cache()
        outcome = await self.orchestrators[key].refresh(trigger="admin")
        if outcome.ok:
            cache.put(outcome.records)
            return list(outcome.records)
        logger.warning("force_refresh_unsuccessful", source=key, status=outcome.status.value)
        return []

    async def refresh(self, key: str, trigger: str = "on_demand") -> RefreshOutcome[Any]:
        """One refresh cycle; the cache is updated on success."""
        outcome = await self.orchestrator(key).refresh(trigger=trigger)
        if outcome.ok:
            self.caches[key].put(outcome.records)
        return outcome

    async def run_scheduled(self, key: str, now: datetime | None = None) -> bool:
        ran = await self.orchestrator(key).run_scheduled(now)
        if ran:
            # Next read picks up the new snapshot
            self.caches[key].clear_cache()
        return ran

    def clear_cache(self, key: str | None = None) -> list[str]:
        """Clear one source's cache, or every cache when ``key`` is None."""
        keys = [key] if key else self.keys()
        for k in keys:
            self.cache(k).clear_cache()
        self.america.reload()
        self.sevilla.reload()
        return keys

    # ==========================================
    # Lifecycle
    # ==========================================

    async def close(self) -> None:
        await self.fetcher.close()
        await self.browser.shutdown()

    async def __aenter__(self) -> "ScraperService":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

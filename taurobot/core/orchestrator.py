"""Refresh cycle for one source: fetch -> extract -> persist.

Usage:
    orchestrator = RefreshOrchestrator(
        source=SourceRegistry.require("mundotoro"),
        extractor=MundotoroExtractor(),
        store=SnapshotStore(settings.data_dir),
        fetcher=HtmlFetcher(),
        browser=HeadlessSessionManager(),
        settings=settings,
    )
    outcome = await orchestrator.refresh()
    if not outcome.ok:
        ...

``refresh`` never raises: every failure becomes a ``RefreshOutcome`` with a
non-ok status after the snapshot failure policy has been applied.
"""

from datetime import datetime, timezone
from typing import Generic

from taurobot.config.settings import Settings
from taurobot.config.sources import (
    FetchMode,
    HeadlessOptions,
    SnapshotFailurePolicy,
    SourceConfig,
)
from taurobot.core.browser import BrowserSession, HeadlessSessionManager
from taurobot.core.exceptions import ConfigurationError, StorageError, TaurobotError
from taurobot.core.extraction import BaseExtractor, looks_blocked
from taurobot.core.fetcher import HtmlFetcher
from taurobot.core.models import RecordT, RefreshOutcome, RefreshStatus
from taurobot.core.retry import RetryConfig, run_with_retry
from taurobot.core.snapshot_store import SnapshotStore
from taurobot.logging import get_logger, log_source_run

logger = get_logger(__name__)


class RefreshOrchestrator(Generic[RecordT]):
    """Runs refresh cycles for a single source."""

    def __init__(
        self,
        source: SourceConfig,
        extractor: BaseExtractor[RecordT],
        store: SnapshotStore,
        fetcher: HtmlFetcher | None = None,
        browser: HeadlessSessionManager | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.source = source
        self.extractor = extractor
        self.store = store
        self.fetcher = fetcher
        self.browser = browser
        self.settings = settings or Settings()
        self._in_flight = False

        if source.fetch_mode is FetchMode.HTTP and fetcher is None:
            raise ConfigurationError("HTTP source needs a fetcher", source=source.key)
        if source.fetch_mode is FetchMode.HEADLESS and browser is None:
            raise ConfigurationError("Headless source needs a browser manager", source=source.key)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    # ==========================================
    # Refresh
    # ==========================================

    async def refresh(self, trigger: str = "on_demand") -> RefreshOutcome[RecordT]:
        """Run one fetch/extract/persist cycle.

        A call made while another refresh of this source is running does not
        scrape; it returns a ``skipped`` outcome carrying the last snapshot.
        """
        if self._in_flight:
            logger.info("refresh_skipped_in_flight", source=self.source.key)
            previous = await self._load_snapshot()
            return RefreshOutcome(
                source=self.source.key,
                status=RefreshStatus.SKIPPED,
                records=previous or [],
            )

        self._in_flight = True
        try:
            with log_source_run(self.source.key, self.source.fetch_mode.value, trigger):
                outcome = await self._run_cycle()
        finally:
            self._in_flight = False

        return outcome

    async def _run_cycle(self) -> RefreshOutcome[RecordT]:
        started = datetime.now(timezone.utc)
        logger.info("refresh_started", url=self.source.url)

        try:
            records, html = await run_with_retry(
                self._fetch_and_extract,
                self._retry_config(),
                name=f"refresh:{self.source.key}",
            )
        except TaurobotError as e:
            logger.error("refresh_failed", error=str(e), error_type=type(e).__name__)
            return await self._fail(RefreshStatus.FAILED, error=str(e))
        except Exception as e:
            logger.exception("refresh_unexpected_error", error=str(e))
            return await self._fail(RefreshStatus.FAILED, error=f"{type(e).__name__}: {e}")

        if not records:
            status = RefreshStatus.BLOCKED if looks_blocked(html) else RefreshStatus.EMPTY
            logger.warning(
                "refresh_no_records",
                status=status.value,
                html_length=len(html),
            )
            return await self._fail(status)

        try:
            await self.store.save(self.source.snapshot_name, records)
        except StorageError as e:
            # Records are still good; only persistence failed
            logger.error("snapshot_save_failed", error=str(e))

        duration = (datetime.now(timezone.utc) - started).total_seconds()
        logger.info("refresh_completed", count=len(records), duration_seconds=round(duration, 2))
        return RefreshOutcome(source=self.source.key, status=RefreshStatus.OK, records=records)

    async def _fetch_and_extract(self) -> tuple[list[RecordT], str]:
        if self.source.fetch_mode is FetchMode.HEADLESS:
            html = await self._render()
        else:
            html = await self.fetcher.fetch(self.source.url, source=self.source.key)
        return self.extractor.extract(html), html

    async def _render(self) -> str:
        """Drive a headless session for the source and return the final HTML."""
        options = self.source.headless or HeadlessOptions()
        async with self.browser.session(options) as session:
            try:
                return await self._drive(session, options)
            finally:
                if self.settings.debug_artifacts:
                    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
                    await self.browser.capture_debug_artifacts(
                        session, self.settings.debug_dir, f"{self.source.key}_{stamp}"
                    )

    async def _drive(self, session: BrowserSession, options: HeadlessOptions) -> str:
        await self.browser.navigate(
            session,
            self.source.url,
            wait_until=options.wait_until,
            timeout_ms=options.navigation_timeout_ms or self.settings.navigation_timeout_ms,
        )
        await self.browser.settle(session, options.settle_ms)

        if options.cookie_button_selector:
            await self.browser.dismiss_cookie_banner(session, options.cookie_button_selector)

        if options.wait_for_selector:
            await self.browser.wait_for_selector(
                session, options.wait_for_selector, options.wait_for_selector_timeout_ms
            )

        if options.load_more_selector:
            clicks = await self.browser.load_all(
                session,
                item_selector=options.load_more_item_selector or options.wait_for_selector or "*",
                button_selector=options.load_more_selector,
                timeout_ms=options.load_more_timeout_ms,
                max_clicks=options.max_load_more_clicks,
            )
            logger.info("load_more_done", clicks=clicks)

        return await self.browser.content(session)

    def _retry_config(self) -> RetryConfig:
        # Sources on the default policy follow the global settings
        if self.source.retry == RetryConfig():
            return RetryConfig(
                max_attempts=self.settings.max_retries,
                initial_delay=self.settings.retry_delay,
            )
        return self.source.retry

    async def _fail(self, status: RefreshStatus, error: str | None = None) -> RefreshOutcome[RecordT]:
        """Apply the failure policy and build a non-ok outcome.

        Under ``KEEP_LAST_GOOD`` the outcome carries the kept snapshot so a
        reader with nothing cached still gets the last good records.
        """
        kept: list[RecordT] = []
        if self.source.failure_policy is SnapshotFailurePolicy.WRITE_EMPTY:
            try:
                await self.store.save(self.source.snapshot_name, [])
                logger.warning("snapshot_emptied", status=status.value)
            except StorageError as e:
                logger.error("snapshot_save_failed", error=str(e))
        else:
            kept = await self._load_snapshot() or []
            logger.warning("snapshot_kept", status=status.value, count=len(kept))

        return RefreshOutcome(source=self.source.key, status=status, records=kept, error=error)

    # ==========================================
    # Reads and scheduled runs
    # ==========================================

    async def _load_snapshot(self) -> list[RecordT] | None:
        return await self.store.load(self.source.snapshot_name, self.extractor.record_model)

    async def load(self) -> RefreshOutcome[RecordT]:
        """Snapshot-first read for expensive sources.

        A non-empty snapshot is served as an ok outcome without scraping;
        otherwise (and for sources that are not snapshot-first) a refresh runs.
        """
        if self.source.snapshot_first:
            records = await self._load_snapshot()
            if records:
                logger.info("snapshot_served", source=self.source.key, count=len(records))
                return RefreshOutcome(source=self.source.key, status=RefreshStatus.OK, records=records)
            logger.info("snapshot_unavailable_refreshing", source=self.source.key)
        return await self.refresh()

    async def run_scheduled(self, now: datetime | None = None) -> bool:
        """Scheduled refresh gated by the minimum interval since the last one.

        The marker is only written after an ok refresh.

        Returns:
            True if a refresh ran and succeeded
        """
        now = now or datetime.now(timezone.utc)
        interval = self.source.min_schedule_interval

        if interval is not None:
            last_run = await self.store.get_last_scheduled_run(self.source.key)
            if last_run is not None and now - last_run < interval:
                logger.info(
                    "scheduled_refresh_not_due",
                    source=self.source.key,
                    last_run=last_run.isoformat(),
                    days_since=(now - last_run).days,
                    min_interval_days=interval.days,
                )
                return False

        outcome = await self.refresh(trigger="scheduled")
        if not outcome.ok:
            logger.warning("scheduled_refresh_unsuccessful", source=self.source.key, status=outcome.status.value)
            return False

        try:
            await self.store.mark_scheduled_run(self.source.key, now)
        except StorageError as e:
            logger.error("schedule_marker_write_failed", source=self.source.key, error=str(e))
        return True

"""Tests for the refresh orchestrator."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from taurobot.adapters.elmuletazo import ElMuletazoExtractor
from taurobot.adapters.mundotoro import MundotoroExtractor
from taurobot.config.sources import FetchMode, HeadlessOptions, SnapshotFailurePolicy
from taurobot.core.exceptions import ConfigurationError, HTTPStatusError, SessionError
from taurobot.core.models import RankingEntry, RefreshStatus, TelevisedEvent
from taurobot.core.orchestrator import RefreshOrchestrator
from taurobot.core.retry import RetryConfig

from fakes import FakeBrowser, FakeFetcher


def ranking(n: int) -> list[RankingEntry]:
    return [RankingEntry(position=str(i), name=f"Torero {i}") for i in range(1, n + 1)]


def http_orchestrator(source_factory, store, settings, fetcher, **source_kwargs):
    return RefreshOrchestrator(
        source=source_factory("elmuletazo", **source_kwargs),
        extractor=ElMuletazoExtractor(),
        store=store,
        fetcher=fetcher,
        settings=settings,
    )


def headless_orchestrator(source_factory, store, settings, browser, **source_kwargs):
    source_kwargs.setdefault(
        "headless",
        HeadlessOptions(
            settle_ms=5_000,
            stealth=True,
            cookie_button_selector="button.cmplz-accept",
        ),
    )
    return RefreshOrchestrator(
        source=source_factory("mundotoro", fetch_mode=FetchMode.HEADLESS, **source_kwargs),
        extractor=MundotoroExtractor(),
        store=store,
        browser=browser,
        settings=settings,
    )


class TestRefreshHttp:
    """Refresh cycles for plain HTTP sources."""

    @pytest.mark.asyncio
    async def test_ok_saves_snapshot(self, source_factory, store, settings, fixture_html):
        orchestrator = http_orchestrator(
            source_factory, store, settings, FakeFetcher(fixture_html("elmuletazo.html"))
        )

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.OK
        assert len(outcome.records) == 4
        saved = await store.load("elmuletazo-snapshot", TelevisedEvent)
        assert saved == outcome.records

    @pytest.mark.asyncio
    async def test_fetch_error_is_not_retried(self, source_factory, store, settings):
        fetcher = FakeFetcher(HTTPStatusError(503, "https://elmuletazo.example.com"))
        orchestrator = http_orchestrator(
            source_factory, store, settings, fetcher,
            retry=RetryConfig(max_attempts=3, initial_delay=0, jitter=0),
        )

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.FAILED
        assert "HTTP 503" in outcome.error
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_empty_extraction(self, source_factory, store, settings):
        orchestrator = http_orchestrator(
            source_factory, store, settings, FakeFetcher("<html><body><div>nada</div></body></html>")
        )

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.EMPTY
        assert outcome.records == []

    @pytest.mark.asyncio
    async def test_blocked_page(self, source_factory, store, settings):
        orchestrator = http_orchestrator(
            source_factory, store, settings, FakeFetcher("<html><h1>Access Denied</h1></html>")
        )

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.BLOCKED

    @pytest.mark.asyncio
    async def test_parse_error_is_failure(self, source_factory, store, settings):
        orchestrator = http_orchestrator(source_factory, store, settings, FakeFetcher("sin etiquetas"))

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_error_never_raises(self, source_factory, store, settings):
        orchestrator = http_orchestrator(source_factory, store, settings, FakeFetcher(RuntimeError("bug")))

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.FAILED
        assert "RuntimeError" in outcome.error

    def test_missing_fetcher(self, source_factory, store, settings):
        with pytest.raises(ConfigurationError):
            RefreshOrchestrator(
                source=source_factory("elmuletazo"),
                extractor=ElMuletazoExtractor(),
                store=store,
                settings=settings,
            )


class TestFailurePolicy:
    """What happens to the previous snapshot when a refresh fails."""

    @pytest.mark.asyncio
    async def test_write_empty_replaces_snapshot(self, source_factory, store, settings):
        await store.save("mundotoro-snapshot", ranking(12))
        browser = FakeBrowser(error=SessionError("browser crashed"))
        orchestrator = headless_orchestrator(source_factory, store, settings, browser)

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.FAILED
        assert outcome.records == []
        assert await store.load("mundotoro-snapshot", RankingEntry) == []

    @pytest.mark.asyncio
    async def test_keep_last_good_preserves_snapshot(self, source_factory, store, settings):
        await store.save("mundotoro-snapshot", ranking(12))
        browser = FakeBrowser(error=SessionError("browser crashed"))
        orchestrator = headless_orchestrator(
            source_factory, store, settings, browser,
            failure_policy=SnapshotFailurePolicy.KEEP_LAST_GOOD,
        )

        outcome = await orchestrator.refresh()
        served = await orchestrator.load()

        assert outcome.status is RefreshStatus.FAILED
        assert outcome.records == ranking(12)
        assert await store.load("mundotoro-snapshot", RankingEntry) == ranking(12)
        # Not snapshot-first, so load() tried again and failed again
        assert served.status is RefreshStatus.FAILED
        assert served.records == ranking(12)

    @pytest.mark.asyncio
    async def test_keep_last_good_snapshot_first_serves_prior_records(self, source_factory, store, settings):
        await store.save("mundotoro-snapshot", ranking(12))
        browser = FakeBrowser(error=SessionError("browser crashed"))
        orchestrator = headless_orchestrator(
            source_factory, store, settings, browser,
            failure_policy=SnapshotFailurePolicy.KEEP_LAST_GOOD,
            snapshot_first=True,
        )

        await orchestrator.refresh()
        served = await orchestrator.load()

        assert served.ok
        assert served.records == ranking(12)

    @pytest.mark.asyncio
    async def test_keep_last_good_with_unreadable_snapshot(self, source_factory, store, settings):
        store.data_dir.mkdir(parents=True)
        store.snapshot_path("mundotoro-snapshot").write_bytes(b'[{"posicion": "1", "lidiador": "\xff"}]')
        browser = FakeBrowser(error=SessionError("browser crashed"))
        orchestrator = headless_orchestrator(
            source_factory, store, settings, browser,
            failure_policy=SnapshotFailurePolicy.KEEP_LAST_GOOD,
        )

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.FAILED
        assert outcome.records == []

    @pytest.mark.asyncio
    async def test_empty_result_keeps_snapshot(self, source_factory, store, settings):
        await store.save("mundotoro-snapshot", ranking(3))
        orchestrator = headless_orchestrator(
            source_factory, store, settings, FakeBrowser(html="<html><p>mantenimiento</p></html>"),
            failure_policy=SnapshotFailurePolicy.KEEP_LAST_GOOD,
        )

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.EMPTY
        assert len(await store.load("mundotoro-snapshot", RankingEntry)) == 3


class TestRefreshHeadless:
    """Refresh cycles for headless sources."""

    @pytest.mark.asyncio
    async def test_drives_session_and_releases(self, source_factory, store, settings, fixture_html):
        browser = FakeBrowser(html=fixture_html("mundotoro.html"))
        orchestrator = headless_orchestrator(source_factory, store, settings, browser)

        outcome = await orchestrator.refresh()

        assert outcome.ok
        assert [r.name for r in outcome.records] == ["Roca Rey", "Borja Jiménez"]
        assert browser.acquired == browser.released == 1
        assert [a[0] for a in browser.actions] == ["navigate", "settle", "cookies"]

    @pytest.mark.asyncio
    async def test_load_more_flow(self, source_factory, store, settings, fixture_html):
        browser = FakeBrowser(html=fixture_html("mundotoro.html"))
        options = HeadlessOptions(wait_for_selector=".card.evento", load_more_selector="a.mas")
        orchestrator = headless_orchestrator(source_factory, store, settings, browser, headless=options)

        await orchestrator.refresh()

        assert ("wait_for", ".card.evento") in browser.actions
        assert ("load_all", ".card.evento", "a.mas") in browser.actions

    @pytest.mark.asyncio
    async def test_session_error_retried_then_released(self, source_factory, store, settings):
        browser = FakeBrowser(error=SessionError("timeout"))
        orchestrator = headless_orchestrator(
            source_factory, store, settings, browser,
            retry=RetryConfig(max_attempts=3, initial_delay=0, jitter=0, exponential=False),
        )

        outcome = await orchestrator.refresh()

        assert outcome.status is RefreshStatus.FAILED
        assert browser.acquired == 3
        assert browser.released == 3

    @pytest.mark.asyncio
    async def test_debug_artifacts_only_when_enabled(self, source_factory, store, settings, fixture_html):
        browser = FakeBrowser(html=fixture_html("mundotoro.html"))
        orchestrator = headless_orchestrator(source_factory, store, settings, browser)
        await orchestrator.refresh()
        assert browser.artifacts == []

        debug_settings = settings.model_copy(update={"debug_artifacts": True})
        orchestrator = headless_orchestrator(source_factory, store, debug_settings, browser)
        await orchestrator.refresh()
        assert len(browser.artifacts) == 1
        assert browser.artifacts[0][0] == debug_settings.debug_dir


class TestInFlightGuard:
    """A second refresh while one is running is skipped."""

    @pytest.mark.asyncio
    async def test_reentrant_call_skipped(self, source_factory, store, settings, fixture_html):
        await store.save("mundotoro-snapshot", ranking(2))
        gate = asyncio.Event()
        browser = FakeBrowser(html=fixture_html("mundotoro.html"), gate=gate)
        orchestrator = headless_orchestrator(source_factory, store, settings, browser)

        first = asyncio.create_task(orchestrator.refresh())
        await asyncio.sleep(0)
        assert orchestrator.in_flight

        second = await orchestrator.refresh()
        gate.set()
        first_outcome = await first

        assert second.status is RefreshStatus.SKIPPED
        assert second.records == ranking(2)
        assert first_outcome.ok
        assert browser.acquired == 1
        assert not orchestrator.in_flight


class TestLoad:
    """Snapshot-first reads."""

    @pytest.mark.asyncio
    async def test_snapshot_served_without_scraping(self, source_factory, store, settings):
        await store.save("mundotoro-snapshot", ranking(5))
        browser = FakeBrowser()
        orchestrator = headless_orchestrator(source_factory, store, settings, browser, snapshot_first=True)

        outcome = await orchestrator.load()

        assert outcome.ok
        assert len(outcome.records) == 5
        assert browser.acquired == 0

    @pytest.mark.asyncio
    async def test_empty_snapshot_triggers_refresh(self, source_factory, store, settings, fixture_html):
        await store.save("mundotoro-snapshot", [])
        browser = FakeBrowser(html=fixture_html("mundotoro.html"))
        orchestrator = headless_orchestrator(source_factory, store, settings, browser, snapshot_first=True)

        outcome = await orchestrator.load()

        assert outcome.ok
        assert browser.acquired == 1

    @pytest.mark.asyncio
    async def test_missing_snapshot_triggers_refresh(self, source_factory, store, settings, fixture_html):
        browser = FakeBrowser(html=fixture_html("mundotoro.html"))
        orchestrator = headless_orchestrator(source_factory, store, settings, browser, snapshot_first=True)

        outcome = await orchestrator.load()

        assert len(outcome.records) == 2


class TestScheduledRuns:
    """Gating of scheduled refreshes by minimum interval."""

    NOW = datetime(2026, 3, 15, 3, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_not_due_skips_and_keeps_marker(self, source_factory, store, settings):
        last = self.NOW - timedelta(days=10)
        await store.mark_scheduled_run("mundotoro", last)
        browser = FakeBrowser()
        orchestrator = headless_orchestrator(
            source_factory, store, settings, browser, min_schedule_interval=timedelta(days=15)
        )

        ran = await orchestrator.run_scheduled(now=self.NOW)

        assert ran is False
        assert browser.acquired == 0
        assert await store.get_last_scheduled_run("mundotoro") == last

    @pytest.mark.asyncio
    async def test_due_runs_and_marks(self, source_factory, store, settings, fixture_html):
        await store.mark_scheduled_run("mundotoro", self.NOW - timedelta(days=16))
        browser = FakeBrowser(html=fixture_html("mundotoro.html"))
        orchestrator = headless_orchestrator(
            source_factory, store, settings, browser, min_schedule_interval=timedelta(days=15)
        )

        ran = await orchestrator.run_scheduled(now=self.NOW)

        assert ran is True
        assert await store.get_last_scheduled_run("mundotoro") == self.NOW

    @pytest.mark.asyncio
    async def test_first_run_without_marker(self, source_factory, store, settings, fixture_html):
        browser = FakeBrowser(html=fixture_html("mundotoro.html"))
        orchestrator = headless_orchestrator(
            source_factory, store, settings, browser, min_schedule_interval=timedelta(days=15)
        )

        assert await orchestrator.run_scheduled(now=self.NOW) is True

    @pytest.mark.asyncio
    async def test_failed_run_does_not_mark(self, source_factory, store, settings):
        browser = FakeBrowser(error=SessionError("blocked"))
        orchestrator = headless_orchestrator(
            source_factory, store, settings, browser, min_schedule_interval=timedelta(days=15)
        )

        ran = await orchestrator.run_scheduled(now=self.NOW)

        assert ran is False
        assert await store.get_last_scheduled_run("mundotoro") is None

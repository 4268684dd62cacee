"""Tests for the headless session manager (Playwright mocked)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from taurobot.config.sources import HeadlessOptions, SessionMode
from taurobot.core.browser import HeadlessSessionManager, make_route_handler
from taurobot.core.exceptions import SessionError
from taurobot.core.stealth import STEALTH_LAUNCH_ARGS, build_init_script


def make_page():
    page = MagicMock()
    page.goto = AsyncMock()
    page.content = AsyncMock(return_value="<html></html>")
    page.wait_for_timeout = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.wait_for_function = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.query_selector = AsyncMock(return_value=None)
    page.query_selector_all = AsyncMock(return_value=[])
    page.screenshot = AsyncMock()
    return page


def make_context(page):
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.add_init_script = AsyncMock()
    context.route = AsyncMock()
    context.close = AsyncMock()
    return context


@pytest.fixture
def page():
    return make_page()


@pytest.fixture
def context(page):
    return make_context(page)


@pytest.fixture
def playwright(context):
    pw = MagicMock()
    pw.stop = AsyncMock()
    pw.chromium.launch_persistent_context = AsyncMock(return_value=context)
    browser = MagicMock()
    browser.is_connected.return_value = True
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()
    pw.chromium.launch = AsyncMock(return_value=browser)
    return pw


@pytest.fixture
def manager(tmp_path, playwright):
    factory = MagicMock()
    factory.return_value.start = AsyncMock(return_value=playwright)
    return HeadlessSessionManager(tmp_dir=tmp_path, playwright_factory=factory)


class TestFreshSessions:
    """Fresh browser + temporary profile per scrape."""

    @pytest.mark.asyncio
    async def test_profile_dir_removed_on_release(self, manager, playwright, tmp_path):
        session = await manager.acquire_session(HeadlessOptions(session_mode=SessionMode.FRESH))

        assert session.profile_dir is not None
        assert session.profile_dir.parent == tmp_path
        assert session.profile_dir.name.startswith("browser_profile_")
        assert session.profile_dir.exists()

        await manager.release(session)

        assert not session.profile_dir.exists()
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self, manager, context):
        session = await manager.acquire_session()

        await manager.release(session)
        await manager.release(session)

        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stealth_installed_before_page(self, manager, playwright, context):
        calls = []
        context.add_init_script.side_effect = lambda script: calls.append("init_script")
        context.new_page.side_effect = lambda: calls.append("new_page")

        await manager.acquire_session(HeadlessOptions(stealth=True))

        assert calls == ["init_script", "new_page"]
        context.add_init_script.assert_awaited_once_with(build_init_script())
        args = playwright.chromium.launch_persistent_context.call_args.kwargs["args"]
        assert set(STEALTH_LAUNCH_ARGS) <= set(args)
        assert "--no-sandbox" in args

    @pytest.mark.asyncio
    async def test_no_stealth_no_blocking(self, manager, context):
        await manager.acquire_session(HeadlessOptions(stealth=False, blocked_resource_types=()))

        context.add_init_script.assert_not_awaited()
        context.route.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_context_options(self, manager, playwright):
        options = HeadlessOptions(extra_headers={"Accept-Language": "es-ES"})

        await manager.acquire_session(options)

        kwargs = playwright.chromium.launch_persistent_context.call_args.kwargs
        assert kwargs["locale"] == "es-ES"
        assert kwargs["viewport"] == {"width": 1920, "height": 1080}
        assert kwargs["extra_http_headers"] == {"Accept-Language": "es-ES"}

    @pytest.mark.asyncio
    async def test_launch_failure(self, manager, playwright, tmp_path):
        playwright.chromium.launch_persistent_context.side_effect = PlaywrightError("no chromium")

        with pytest.raises(SessionError):
            await manager.acquire_session()

        assert list(tmp_path.iterdir()) == []
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_context_manager_releases_on_error(self, manager, context, tmp_path):
        with pytest.raises(RuntimeError):
            async with manager.session() as session:
                raise RuntimeError("extraction bug")

        context.close.assert_awaited_once()
        assert session.released
        assert list(tmp_path.iterdir()) == []


class TestPersistentSessions:
    """One long-lived browser, a context per scrape."""

    @pytest.mark.asyncio
    async def test_browser_reused(self, manager, playwright, context):
        options = HeadlessOptions(session_mode=SessionMode.PERSISTENT)

        first = await manager.acquire_session(options)
        await manager.release(first)
        second = await manager.acquire_session(options)
        await manager.release(second)

        playwright.chromium.launch.assert_awaited_once()
        assert context.close.await_count == 2
        assert first.profile_dir is None
        playwright.stop.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_shutdown_closes_browser(self, manager, playwright):
        session = await manager.acquire_session(HeadlessOptions(session_mode=SessionMode.PERSISTENT))
        await manager.release(session)

        await manager.shutdown()

        browser = playwright.chromium.launch.return_value
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()


class TestPageOperations:
    """navigate / waits / cookie banner / load more."""

    @pytest.mark.asyncio
    async def test_navigation_timeout_is_session_error(self, manager, page):
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 90000ms exceeded")
        session = await manager.acquire_session()

        with pytest.raises(SessionError):
            await manager.navigate(session, "https://www.mundotoro.com/escalafon-toreros")

    @pytest.mark.asyncio
    async def test_navigate_passes_wait_until(self, manager, page):
        session = await manager.acquire_session()

        await manager.navigate(session, "https://example.com", wait_until="domcontentloaded", timeout_ms=1000)

        page.goto.assert_awaited_once_with("https://example.com", wait_until="domcontentloaded", timeout=1000)

    @pytest.mark.asyncio
    async def test_wait_for_selector_timeout(self, manager, page):
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("timeout")
        session = await manager.acquire_session()

        assert await manager.wait_for_selector(session, ".card.evento", 10) is False

    @pytest.mark.asyncio
    async def test_cookie_banner_absent(self, manager, page):
        session = await manager.acquire_session()

        assert await manager.dismiss_cookie_banner(session, "button.cmplz-accept") is False

    @pytest.mark.asyncio
    async def test_cookie_banner_clicked(self, manager, page):
        button = MagicMock()
        button.click = AsyncMock()
        page.query_selector.return_value = button
        page.wait_for_load_state.side_effect = PlaywrightTimeoutError("still loading")
        session = await manager.acquire_session()

        assert await manager.dismiss_cookie_banner(session, "button.cmplz-accept", settle_ms=0) is True
        button.click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cookie_banner_error_swallowed(self, manager, page):
        page.query_selector.side_effect = PlaywrightError("detached")
        session = await manager.acquire_session()

        assert await manager.dismiss_cookie_banner(session, "button.cmplz-accept") is False

    @pytest.mark.asyncio
    async def test_load_all_until_button_gone(self, manager, page):
        button = MagicMock()
        button.click = AsyncMock()
        page.query_selector_all.side_effect = [[1, 2], [1, 2, 3, 4], [1, 2, 3, 4, 5]]
        page.query_selector.side_effect = [button, button, None]
        session = await manager.acquire_session()

        clicks = await manager.load_all(session, ".card.evento", "a.mas")

        assert clicks == 2
        assert button.click.await_count == 2
        assert page.wait_for_function.call_args.kwargs["arg"] == [".card.evento", 4]

    @pytest.mark.asyncio
    async def test_load_all_stops_when_nothing_new(self, manager, page):
        button = MagicMock()
        button.click = AsyncMock()
        page.query_selector_all.return_value = [1, 2]
        page.query_selector.return_value = button
        page.wait_for_function.side_effect = PlaywrightTimeoutError("no growth")
        session = await manager.acquire_session()

        assert await manager.load_all(session, ".card.evento", "a.mas", timeout_ms=10) == 0

    @pytest.mark.asyncio
    async def test_load_all_stops_when_button_unclickable(self, manager, page):
        button = MagicMock()
        button.click = AsyncMock(side_effect=PlaywrightTimeoutError("element is not visible"))
        page.query_selector_all.return_value = [1, 2]
        page.query_selector.return_value = button
        session = await manager.acquire_session()

        assert await manager.load_all(session, ".card.evento", "a.mas", timeout_ms=10) == 0
        button.click.assert_awaited_once_with(timeout=10)
        page.wait_for_function.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_load_all_respects_max_clicks(self, manager, page):
        button = MagicMock()
        button.click = AsyncMock()
        page.query_selector_all.return_value = [1]
        page.query_selector.return_value = button
        session = await manager.acquire_session()

        assert await manager.load_all(session, ".x", "a.mas", max_clicks=3) == 3

    @pytest.mark.asyncio
    async def test_debug_artifacts(self, manager, page, tmp_path):
        session = await manager.acquire_session()

        await manager.capture_debug_artifacts(session, tmp_path / "debug", "mundotoro")

        page.screenshot.assert_awaited_once()
        assert (tmp_path / "debug" / "mundotoro.html").read_text(encoding="utf-8") == "<html></html>"


class TestRouteHandler:
    """Resource blocking."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("resource_type,aborted", [("image", True), ("font", True), ("document", False)])
    async def test_blocking(self, resource_type, aborted):
        route = MagicMock()
        route.request.resource_type = resource_type
        route.abort = AsyncMock()
        route.continue_ = AsyncMock()

        await make_route_handler(("image", "stylesheet", "font"))(route)

        assert route.abort.await_count == (1 if aborted else 0)
        assert route.continue_.await_count == (0 if aborted else 1)

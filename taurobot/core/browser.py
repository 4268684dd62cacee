"""Headless browser lifecycle for JS-rendered and anti-bot protected pages.

Two session modes are supported, chosen per source:

- ``FRESH``: a new Chromium with its own temporary profile directory for every
  scrape. Nothing survives between scrapes, so a flagged fingerprint does not
  carry over.
- ``PERSISTENT``: one long-lived Chromium, a new context + page per scrape.
  Cheaper for sites that only care about request frequency.

Every session is released through ``release`` (or the ``session`` context
manager), which closes the browser side and removes the profile directory on
every exit path.
"""

import asyncio
import shutil
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import uuid4

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from taurobot.config.sources import HeadlessOptions, SessionMode
from taurobot.core.exceptions import SessionError
from taurobot.core.scraper_config import DEFAULT_USER_AGENT
from taurobot.core.stealth import STEALTH_LAUNCH_ARGS, build_init_script
from taurobot.logging import get_logger

logger = get_logger(__name__)

LAUNCH_ARGS = ("--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage")
VIEWPORT = {"width": 1920, "height": 1080}

# Count of matching elements grew past the previous count
_ITEM_COUNT_GREW = "([selector, count]) => document.querySelectorAll(selector).length > count"


@dataclass
class BrowserSession:
    """Handle for one scrape: a page plus everything that must be released."""

    mode: SessionMode
    context: BrowserContext
    page: Page | None = None  # Opened by acquire_session
    playwright: Playwright | None = None  # Owned by the session (FRESH only)
    profile_dir: Path | None = None
    released: bool = field(default=False, init=False)


def make_route_handler(blocked_types: tuple[str, ...]) -> Callable[[Route], Awaitable[None]]:
    """Route handler aborting ``blocked_types`` and letting everything else through."""
    blocked = frozenset(blocked_types)

    async def handle(route: Route) -> None:
        if route.request.resource_type in blocked:
            await route.abort()
        else:
            await route.continue_()

    return handle


class HeadlessSessionManager:
    """Owns headless Chromium processes for the scraping core."""

    def __init__(
        self,
        tmp_dir: Path = Path("tmp"),
        headless: bool = True,
        executable_path: str | None = None,
        launch_timeout_ms: int = 60_000,
        navigation_timeout_ms: int = 90_000,
        user_agent: str = DEFAULT_USER_AGENT,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self.tmp_dir = tmp_dir
        self.headless = headless
        self.executable_path = executable_path
        self.launch_timeout_ms = launch_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.user_agent = user_agent
        self._playwright_factory = playwright_factory

        # Long-lived browser for PERSISTENT sessions
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._browser_lock = asyncio.Lock()

    # ==========================================
    # Session lifecycle
    # ==========================================

    async def acquire_session(self, options: HeadlessOptions | None = None) -> BrowserSession:
        """Launch (or reuse) a browser and open a page ready for navigation.

        Raises:
            SessionError: the browser could not be launched
        """
        options = options or HeadlessOptions()
        if options.session_mode is SessionMode.PERSISTENT:
            session = await self._open_persistent(options)
        else:
            session = await self._open_fresh(options)

        try:
            await self._prepare_context(session.context, options)
            session.page = await session.context.new_page()
        except PlaywrightError as e:
            await self.release(session)
            raise SessionError(f"Could not open page: {e}") from e

        logger.info(
            "browser_session_acquired",
            mode=session.mode.value,
            profile_dir=str(session.profile_dir) if session.profile_dir else None,
        )
        return session

    async def release(self, session: BrowserSession) -> None:
        """Close the session and remove its profile directory. Idempotent."""
        if session.released:
            return
        session.released = True

        try:
            # For FRESH sessions the context *is* the browser
            await session.context.close()
        except PlaywrightError as e:
            logger.warning("browser_context_close_failed", error=str(e))
        finally:
            if session.playwright is not None:
                try:
                    await session.playwright.stop()
                except PlaywrightError as e:
                    logger.warning("playwright_stop_failed", error=str(e))
            if session.profile_dir is not None:
                await asyncio.to_thread(shutil.rmtree, session.profile_dir, True)
                logger.info("browser_profile_removed", profile_dir=str(session.profile_dir))

        logger.info("browser_session_released", mode=session.mode.value)

    @asynccontextmanager
    async def session(self, options: HeadlessOptions | None = None) -> AsyncIterator[BrowserSession]:
        """``acquire_session`` + guaranteed ``release``."""
        browser_session = await self.acquire_session(options)
        try:
            yield browser_session
        finally:
            await self.release(browser_session)

    async def shutdown(self) -> None:
        """Close the long-lived browser used by PERSISTENT sessions."""
        async with self._browser_lock:
            if self._browser is not None:
                try:
                    await self._browser.close()
                except PlaywrightError as e:
                    logger.warning("browser_close_failed", error=str(e))
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
        logger.info("browser_manager_shutdown")

    # ==========================================
    # Page operations
    # ==========================================

    async def navigate(
        self,
        session: BrowserSession,
        url: str,
        wait_until: str = "networkidle",
        timeout_ms: int | None = None,
    ) -> None:
        """Load ``url``; a navigation timeout or crash is a ``SessionError``."""
        timeout_ms = timeout_ms or self.navigation_timeout_ms
        logger.info("browser_navigate", url=url, wait_until=wait_until, timeout_ms=timeout_ms)
        try:
            await session.page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise SessionError(f"Navigation to {url} timed out after {timeout_ms}ms") from e
        except PlaywrightError as e:
            raise SessionError(f"Navigation to {url} failed: {e}") from e

    async def settle(self, session: BrowserSession, ms: int) -> None:
        """Give late scripts ``ms`` milliseconds to run."""
        if ms > 0:
            await session.page.wait_for_timeout(ms)

    async def dismiss_cookie_banner(
        self,
        session: BrowserSession,
        selector: str,
        settle_ms: int = 2_000,
    ) -> bool:
        """Click the cookie-consent accept button if present. Never raises."""
        try:
            button = await session.page.query_selector(selector)
            if button is None:
                logger.info("cookie_banner_not_found", selector=selector)
                return False
            await button.click()
            try:
                await session.page.wait_for_load_state("networkidle", timeout=10_000)
            except PlaywrightTimeoutError:
                pass
            await self.settle(session, settle_ms)
            logger.info("cookie_banner_accepted", selector=selector)
            return True
        except PlaywrightError as e:
            logger.info("cookie_banner_not_handled", selector=selector, error=str(e))
            return False

    async def wait_for_selector(
        self,
        session: BrowserSession,
        selector: str,
        timeout_ms: int = 30_000,
    ) -> bool:
        """Wait for ``selector``; False when it never shows up."""
        try:
            await session.page.wait_for_selector(selector, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            logger.warning("selector_wait_timeout", selector=selector, timeout_ms=timeout_ms)
            return False

    async def load_all(
        self,
        session: BrowserSession,
        item_selector: str,
        button_selector: str,
        timeout_ms: int = 15_000,
        max_clicks: int = 100,
    ) -> int:
        """Click a "load more" control until everything is on the page.

        Stops when the control disappears, when a click does not increase the
        number of ``item_selector`` elements within ``timeout_ms`` (treated as
        fully loaded), or after ``max_clicks``.

        Returns:
            Number of clicks that loaded more items
        """
        page = session.page
        clicks = 0
        while clicks < max_clicks:
            count = len(await page.query_selector_all(item_selector))
            button = await page.query_selector(button_selector)
            if button is None:
                logger.info("load_more_absent", items=count, clicks=clicks)
                break

            try:
                await button.click(timeout=timeout_ms)
            except PlaywrightError as e:
                # Control left in the DOM but hidden, disabled or detached
                logger.info("load_more_unclickable", items=count, clicks=clicks, error=str(e))
                break
            try:
                await page.wait_for_function(
                    _ITEM_COUNT_GREW,
                    arg=[item_selector, count],
                    timeout=timeout_ms,
                )
            except PlaywrightTimeoutError:
                logger.info("load_more_exhausted", items=count, clicks=clicks)
                break
            clicks += 1
            logger.debug("load_more_clicked", previous_items=count, clicks=clicks)
        return clicks

    async def content(self, session: BrowserSession) -> str:
        try:
            return await session.page.content()
        except PlaywrightError as e:
            raise SessionError(f"Could not read page content: {e}") from e

    async def capture_debug_artifacts(self, session: BrowserSession, directory: Path, name: str) -> None:
        """Save a full-page screenshot and the rendered HTML. Best effort."""
        try:
            await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
            await session.page.screenshot(path=str(directory / f"{name}.png"), full_page=True)
            html = await session.page.content()
            await asyncio.to_thread((directory / f"{name}.html").write_text, html, "utf-8")
            logger.info("debug_artifacts_saved", directory=str(directory), name=name)
        except (PlaywrightError, OSError) as e:
            logger.warning("debug_artifacts_failed", error=str(e))

    # ==========================================
    # Internals
    # ==========================================

    def _launch_args(self, options: HeadlessOptions) -> list[str]:
        args = list(LAUNCH_ARGS)
        if options.stealth:
            args.extend(STEALTH_LAUNCH_ARGS)
        return args

    def _context_kwargs(self, options: HeadlessOptions) -> dict[str, Any]:
        return {
            "user_agent": self.user_agent,
            "viewport": VIEWPORT,
            "locale": "es-ES",
            "extra_http_headers": dict(options.extra_headers),
        }

    async def _open_fresh(self, options: HeadlessOptions) -> BrowserSession:
        profile_dir = self.tmp_dir / f"browser_profile_{uuid4().hex}"
        await asyncio.to_thread(profile_dir.mkdir, parents=True, exist_ok=True)

        playwright: Playwright | None = None
        try:
            playwright = await self._playwright_factory().start()
            context = await playwright.chromium.launch_persistent_context(
                str(profile_dir),
                headless=self.headless,
                executable_path=self.executable_path,
                timeout=self.launch_timeout_ms,
                args=self._launch_args(options),
                **self._context_kwargs(options),
            )
        except PlaywrightError as e:
            if playwright is not None:
                await playwright.stop()
            await asyncio.to_thread(shutil.rmtree, profile_dir, True)
            logger.error("browser_launch_failed", mode="fresh", error=str(e))
            raise SessionError(f"Could not launch browser: {e}") from e

        return BrowserSession(
            mode=SessionMode.FRESH,
            context=context,
            playwright=playwright,
            profile_dir=profile_dir,
        )

    async def _open_persistent(self, options: HeadlessOptions) -> BrowserSession:
        browser = await self._get_browser(options)
        try:
            context = await browser.new_context(**self._context_kwargs(options))
        except PlaywrightError as e:
            raise SessionError(f"Could not open browser context: {e}") from e
        return BrowserSession(mode=SessionMode.PERSISTENT, context=context)

    async def _get_browser(self, options: HeadlessOptions) -> Browser:
        async with self._browser_lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            logger.info("browser_launching", mode="persistent")
            try:
                if self._playwright is None:
                    self._playwright = await self._playwright_factory().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    executable_path=self.executable_path,
                    timeout=self.launch_timeout_ms,
                    args=self._launch_args(options),
                )
            except PlaywrightError as e:
                logger.error("browser_launch_failed", mode="persistent", error=str(e))
                raise SessionError(f"Could not launch browser: {e}") from e
            return self._browser

    async def _prepare_context(self, context: BrowserContext, options: HeadlessOptions) -> None:
        # Must run before the first page is created to affect its scripts
        if options.stealth:
            await context.add_init_script(build_init_script())
        if options.blocked_resource_types:
            await context.route("**/*", make_route_handler(options.blocked_resource_types))

from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncContextManager, AsyncIterator, Callable, Protocol

import structlog
from playwright.async_api import Browser, BrowserContext, Frame, Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from dashboard_toggle.errors import AutomationError
from dashboard_toggle.settings import BotSettings


logger = structlog.get_logger(__name__)


class BrowserCapability(Protocol):
    """The handful of page primitives the dashboard controller needs."""

    async def navigate(self, url: str) -> None: ...

    async def fill(self, selector: str, value: str) -> None: ...

    async def click(self, selector: str) -> None: ...

    async def wait_settled(self, timeout_seconds: float) -> None: ...

    async def read_text(self, selector: str) -> str | None: ...


SessionFactory = Callable[[], AsyncContextManager[BrowserCapability]]


_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-sync",
    "--metrics-recording-only",
    "--no-first-run",
    "--no-default-browser-check",
    # Avoid renderer crashes when /dev/shm is tiny.
    "--disable-dev-shm-usage",
]


def find_chromium_executable() -> str | None:
    env_path = os.getenv("CHROMIUM_PATH")
    if env_path and Path(env_path).exists():
        return env_path

    candidates = [
        "/usr/bin/chromium",
        "/usr/bin/chromium-browser",
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    ]
    for path in candidates:
        if Path(path).exists():
            return path
    return None


class PlaywrightBrowser:
    """BrowserCapability over a single Playwright page."""

    def __init__(self, page: Page, *, wait_until: str = "domcontentloaded", selector_timeout_seconds: float = 10.0):
        self._page = page
        self._wait_until = wait_until
        self._selector_timeout_ms = int(max(0.1, float(selector_timeout_seconds)) * 1000.0)
        self._navigation: asyncio.Future[Frame] | None = None

    def _is_main_frame(self, frame: Frame) -> bool:
        return frame == self._page.main_frame

    def _drop_navigation(self) -> None:
        if self._navigation is not None and not self._navigation.done():
            self._navigation.cancel()
        self._navigation = None

    async def navigate(self, url: str) -> None:
        await self._page.goto(url, wait_until=self._wait_until)

    async def fill(self, selector: str, value: str) -> None:
        await self._page.fill(selector, value)

    async def click(self, selector: str) -> None:
        # Arm the navigation listener before clicking so a fast navigation is not missed.
        self._drop_navigation()
        self._navigation = asyncio.ensure_future(
            self._page.wait_for_event("framenavigated", predicate=self._is_main_frame, timeout=0)
        )
        try:
            await self._page.click(selector)
        except Exception:
            self._drop_navigation()
            raise

    async def wait_settled(self, timeout_seconds: float) -> None:
        timeout_ms = int(max(0.1, float(timeout_seconds)) * 1000.0)
        navigation, self._navigation = self._navigation, None
        if navigation is not None:
            try:
                await asyncio.wait_for(navigation, timeout=float(timeout_seconds))
            except asyncio.TimeoutError as exc:
                raise PlaywrightTimeoutError(f"navigation did not start within {timeout_seconds}s") from exc
        await self._page.wait_for_load_state(self._wait_until, timeout=timeout_ms)

    async def read_text(self, selector: str) -> str | None:
        locator = self._page.locator(selector).first
        try:
            await locator.wait_for(state="attached", timeout=self._selector_timeout_ms)
        except PlaywrightTimeoutError:
            return None
        return await locator.text_content()

    async def close(self) -> None:
        self._drop_navigation()


async def _route_filter(context: BrowserContext) -> None:
    # The dashboard only needs markup and scripts.
    async def _handler(route) -> None:
        if route.request.resource_type in {"image", "media", "font"}:
            await route.abort()
            return
        await route.continue_()

    await context.route("**/*", _handler)


async def _launch_browser(p: Playwright) -> Browser:
    # Falls back to the Playwright-managed Chromium when no system browser is found.
    return await p.chromium.launch(headless=True, executable_path=find_chromium_executable(), args=_LAUNCH_ARGS)


@asynccontextmanager
async def playwright_session(settings: BotSettings) -> AsyncIterator[PlaywrightBrowser]:
    """
    One isolated browser per invocation: launched on entry, closed on every exit path.
    """
    timeout_ms = int(max(1.0, float(settings.navigation_timeout_seconds)) * 1000.0)
    async with async_playwright() as p:
        try:
            browser = await _launch_browser(p)
        except Exception as exc:
            raise AutomationError(f"browser_launch_failed: {type(exc).__name__}: {exc}") from exc

        session: PlaywrightBrowser | None = None
        try:
            context = await browser.new_context(viewport={"width": 1280, "height": 720})
            await _route_filter(context)
            page = await context.new_page()
            page.set_default_timeout(timeout_ms)
            session = PlaywrightBrowser(page, wait_until=settings.wait_until)
            yield session
        finally:
            if session is not None:
                await session.close()
            try:
                await browser.close()
            except Exception:
                logger.warning("Browser close failed", exc_info=True)


def playwright_session_factory(settings: BotSettings) -> SessionFactory:
    return lambda: playwright_session(settings)

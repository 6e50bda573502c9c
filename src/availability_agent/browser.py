"""Shared Chromium process handing out one isolated context per request."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from .config import Settings

LOGGER = structlog.get_logger(__name__)


class BrowserLaunchError(RuntimeError):
    """Raised when the shared browser process cannot be started."""


class BrowserSessionProvider:
    """Owns the single browser process used by every scrape.

    The process is launched lazily on the first :meth:`acquire` and shared by
    all callers afterwards. Each caller gets its own ``BrowserContext`` so
    cookies, storage and in-page state never leak between concurrent requests.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            if self._browser is None:
                LOGGER.info("browser.launch", headless=self._settings.headless)
                playwright = await async_playwright().start()
                try:
                    self._browser = await playwright.chromium.launch(
                        headless=self._settings.headless,
                        args=list(self._settings.browser_args),
                    )
                except Exception as exc:
                    await playwright.stop()
                    LOGGER.error("browser.launch_failed", error=str(exc))
                    raise BrowserLaunchError(f"Unable to launch Chromium: {exc}") from exc
                self._playwright = playwright
            return self._browser

    async def acquire(self) -> BrowserContext:
        """Return a fresh isolated context from the shared browser."""
        browser = await self._ensure_browser()
        return await browser.new_context()

    async def release(self, context: BrowserContext) -> None:
        """Close a context handed out by :meth:`acquire`; the browser stays up."""
        await context.close()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[BrowserContext]:
        context = await self.acquire()
        try:
            yield context
        finally:
            await self.release(context)

    async def shutdown(self) -> None:
        """Close the shared browser. Safe to call when nothing is running."""
        async with self._lock:
            browser, playwright = self._browser, self._playwright
            self._browser = None
            self._playwright = None
            if browser is not None:
                LOGGER.info("browser.shutdown")
                await browser.close()
            if playwright is not None:
                await playwright.stop()

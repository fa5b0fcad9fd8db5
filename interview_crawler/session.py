"""Headless browser lifecycle: one shared browser, one isolated context per crawl.

The manager is an explicit object handed to the orchestrator. Swap it for any
object with the same `open_page` / `fetch` surface in tests.
"""

from __future__ import annotations

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncContextManager, AsyncIterator, Callable, Optional, Protocol, Set

from playwright.async_api import Browser, BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import CrawlerSettings
from .errors import CrawlerError, NavigationError
from .stealth import random_profile, stealth_scripts

LOGGER = logging.getLogger(__name__)


class BrowserSession(Protocol):
    def open_page(self, site_id: str = "") -> AsyncContextManager[Page]: ...

    async def fetch(
        self,
        page: Page,
        url: str,
        *,
        wait_selector: Optional[str] = None,
        scroll_rounds: int = 0,
    ) -> str: ...


class BrowserSessionManager:
    """Owns the Playwright process, the browser and every open context."""

    def __init__(
        self,
        settings: CrawlerSettings | None = None,
        *,
        playwright_factory: Callable = async_playwright,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or CrawlerSettings()
        self._playwright_factory = playwright_factory
        self._rng = rng or random.Random()
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._contexts: Set[BrowserContext] = set()
        self._ready = False
        self._lock = asyncio.Lock()
        self._last_check: Optional[datetime] = None
        self._last_error: Optional[str] = None

    async def __aenter__(self) -> "BrowserSessionManager":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.shutdown()

    @property
    def is_ready(self) -> bool:
        return self._ready and self._browser is not None and self._browser.is_connected()

    @property
    def open_contexts(self) -> int:
        return len(self._contexts)

    async def start(self) -> None:
        """Launch the browser on first use, or again after a failed health check."""
        if self.is_ready:
            return

        async with self._lock:
            if self.is_ready:
                return

            await self._close_browser()
            LOGGER.info(
                "Launching %s browser (headless=%s)", self.settings.browser, self.settings.headless
            )
            try:
                self._playwright = await self._playwright_factory().start()
                launcher = getattr(self._playwright, self.settings.browser)
                self._browser = await launcher.launch(
                    headless=self.settings.headless,
                    args=list(self.settings.launch_args),
                )
            except Exception as exc:
                LOGGER.error("Failed to launch browser: %s", exc)
                await self._close_browser()
                raise CrawlerError(f"Failed to initialize browser: {exc}") from exc

            self._ready = True
            LOGGER.info("Browser launched")

    @asynccontextmanager
    async def open_page(self, site_id: str = "") -> AsyncIterator[Page]:
        """Yield a page in a fresh context; page and context close on every exit path."""
        browser = await self._require_browser()

        profile = random_profile(self._rng, locale=self.settings.locale)
        context = await browser.new_context(**profile.context_options())
        self._contexts.add(context)
        page: Optional[Page] = None
        try:
            for script in stealth_scripts():
                await context.add_init_script(script)
            context.set_default_timeout(self.settings.selector_timeout_ms)
            context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)

            page = await context.new_page()
            LOGGER.debug("Opened context for %s (ua=%s)", site_id or "<anonymous>", profile.user_agent)
            yield page
        finally:
            if page is not None:
                await self._quietly_close(page, "page")
            await self._quietly_close(context, "context")
            self._contexts.discard(context)

    async def fetch(
        self,
        page: Page,
        url: str,
        *,
        wait_selector: Optional[str] = None,
        scroll_rounds: int = 0,
    ) -> str:
        """Navigate, wait for the result container, scroll and return the page HTML."""
        try:
            await page.goto(url, wait_until="networkidle", timeout=self.settings.navigation_timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(
                f"Timed out after {self.settings.navigation_timeout_ms}ms loading {url}", url=url
            ) from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to load {url}: {exc}", url=url) from exc

        if wait_selector:
            try:
                await page.wait_for_selector(wait_selector, timeout=self.settings.selector_timeout_ms)
            except PlaywrightTimeoutError:
                # Parsing the page as-is yields no items for this keyword.
                LOGGER.info(
                    "Selector %r not found on %s within %dms", wait_selector, url, self.settings.selector_timeout_ms
                )

        for _ in range(scroll_rounds):
            await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
            await asyncio.sleep(self.settings.scroll_pause_seconds)

        return await page.content()

    async def health_check(self) -> bool:
        """Open and close a blank page. A failure forces re-initialisation on next use."""
        self._last_check = datetime.now(timezone.utc)
        try:
            browser = await self._require_browser()
            page = await browser.new_page()
            try:
                await page.goto("about:blank")
            finally:
                await page.close()
        except Exception as exc:
            LOGGER.error("Browser health check failed: %s", exc)
            self._ready = False
            self._last_error = str(exc)
            return False

        self._last_error = None
        return True

    async def health_status(self) -> dict:
        healthy = await self.health_check()
        status = {
            "status": "healthy" if healthy else "unhealthy",
            "browser": "running" if healthy else ("error" if self._last_error else "stopped"),
            "last_check": self._last_check.isoformat() if self._last_check else None,
            "open_contexts": self.open_contexts,
        }
        if self._last_error:
            status["error"] = self._last_error
        return status

    async def shutdown(self) -> None:
        """Close every open context, then the browser and the Playwright driver."""
        async with self._lock:
            for context in list(self._contexts):
                await self._quietly_close(context, "context")
            self._contexts.clear()
            await self._close_browser()
            LOGGER.info("Browser session shut down")

    async def _require_browser(self) -> Browser:
        await self.start()
        if self._browser is None:
            raise CrawlerError("Browser is not available; it was shut down during start-up")
        return self._browser

    async def _close_browser(self) -> None:
        self._ready = False
        if self._browser is not None:
            await self._quietly_close(self._browser, "browser")
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:  # pragma: no cover - driver already gone
                LOGGER.debug("Playwright stop failed: %s", exc)
            self._playwright = None

    @staticmethod
    async def _quietly_close(resource, label: str) -> None:
        try:
            await resource.close()
        except Exception as exc:
            LOGGER.debug("Ignoring error while closing %s: %s", label, exc)

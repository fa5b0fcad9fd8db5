from __future__ import annotations

import random

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from interview_crawler.config import CrawlerSettings
from interview_crawler.errors import CrawlerError, NavigationError
from interview_crawler.session import BrowserSessionManager
from interview_crawler.stealth import stealth_scripts


class FakePage:
    def __init__(self, events, *, goto_error=None, selector_error=None):
        self.events = events
        self.goto_error = goto_error
        self.selector_error = selector_error
        self.closed = False

    async def goto(self, url, **kwargs):
        self.events.append(("goto", url))
        if self.goto_error:
            raise self.goto_error

    async def wait_for_selector(self, selector, timeout=None):
        self.events.append(("wait", selector, timeout))
        if self.selector_error:
            raise self.selector_error

    async def evaluate(self, script):
        self.events.append(("scroll",))

    async def content(self):
        return "<html>ok</html>"

    async def close(self):
        self.closed = True
        self.events.append(("page_closed",))


class FakeContext:
    def __init__(self, events, options, page_kwargs):
        self.events = events
        self.options = options
        self.page_kwargs = page_kwargs
        self.closed = False
        self.page = None

    async def add_init_script(self, script):
        self.events.append(("init_script",))

    def set_default_timeout(self, timeout):
        self.events.append(("default_timeout", timeout))

    def set_default_navigation_timeout(self, timeout):
        self.events.append(("navigation_timeout", timeout))

    async def new_page(self):
        self.events.append(("new_page",))
        self.page = FakePage(self.events, **self.page_kwargs)
        return self.page

    async def close(self):
        self.closed = True
        self.events.append(("context_closed",))


class FakeBrowser:
    def __init__(self, events, page_kwargs):
        self.events = events
        self.page_kwargs = page_kwargs
        self.contexts = []
        self.connected = True
        self.closed = False
        self.blank_page_error = None

    def is_connected(self):
        return self.connected

    async def new_context(self, **options):
        context = FakeContext(self.events, options, self.page_kwargs)
        self.contexts.append(context)
        return context

    async def new_page(self):
        if self.blank_page_error:
            raise self.blank_page_error
        return FakePage(self.events)

    async def close(self):
        self.closed = True
        self.connected = False


class FakeLauncher:
    def __init__(self, owner):
        self.owner = owner

    async def launch(self, headless, args):
        browser = FakeBrowser(self.owner.events, self.owner.page_kwargs)
        self.owner.launches.append({"headless": headless, "args": args})
        self.owner.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self, owner):
        self.chromium = FakeLauncher(owner)
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakeDriver:
    """Replacement for `async_playwright` recording everything it creates."""

    def __init__(self, **page_kwargs):
        self.page_kwargs = page_kwargs
        self.events = []
        self.launches = []
        self.browsers = []

    def __call__(self):
        return self

    async def start(self):
        return FakePlaywright(self)


def make_manager(driver: FakeDriver) -> BrowserSessionManager:
    settings = CrawlerSettings(navigation_timeout_ms=5000, selector_timeout_ms=1000, scroll_pause_seconds=0)
    return BrowserSessionManager(settings, playwright_factory=driver, rng=random.Random(7))


@pytest.mark.asyncio
async def test_browser_launches_lazily_once():
    driver = FakeDriver()
    manager = make_manager(driver)
    assert driver.launches == []

    async with manager.open_page("nowcoder"):
        pass
    async with manager.open_page("csdn"):
        pass

    assert len(driver.launches) == 1
    assert "--disable-blink-features=AutomationControlled" in driver.launches[0]["args"]


@pytest.mark.asyncio
async def test_stealth_scripts_are_installed_before_the_page_exists():
    driver = FakeDriver()
    manager = make_manager(driver)

    async with manager.open_page("juejin"):
        pass

    names = [event[0] for event in driver.events]
    first_page = names.index("new_page")
    assert names[:first_page].count("init_script") == len(stealth_scripts())
    options = driver.browsers[0].contexts[0].options
    assert options["locale"] == "zh-CN"
    assert "Chrome" in options["user_agent"]


@pytest.mark.asyncio
async def test_each_crawl_gets_its_own_context():
    driver = FakeDriver()
    manager = make_manager(driver)

    async with manager.open_page("nowcoder"):
        async with manager.open_page("csdn"):
            assert manager.open_contexts == 2

    contexts = driver.browsers[0].contexts
    assert contexts[0] is not contexts[1]
    assert manager.open_contexts == 0


@pytest.mark.asyncio
async def test_page_and_context_close_when_the_body_fails():
    driver = FakeDriver()
    manager = make_manager(driver)

    with pytest.raises(RuntimeError):
        async with manager.open_page("nowcoder"):
            raise RuntimeError("parse exploded")

    context = driver.browsers[0].contexts[0]
    assert context.page.closed
    assert context.closed
    assert manager.open_contexts == 0


@pytest.mark.asyncio
async def test_navigation_timeout_becomes_navigation_error_and_still_cleans_up():
    driver = FakeDriver(goto_error=PlaywrightTimeoutError("Timeout 5000ms exceeded"))
    manager = make_manager(driver)

    with pytest.raises(NavigationError, match="Timed out after 5000ms"):
        async with manager.open_page("csdn") as page:
            await manager.fetch(page, "https://so.csdn.net/so/search?q=x")

    context = driver.browsers[0].contexts[0]
    assert context.page.closed and context.closed


@pytest.mark.asyncio
async def test_missing_container_still_returns_the_page():
    driver = FakeDriver(selector_error=PlaywrightTimeoutError("waiting for selector"))
    manager = make_manager(driver)

    async with manager.open_page("juejin") as page:
        html = await manager.fetch(
            page, "https://juejin.cn/search?query=x", wait_selector=".search-result-list", scroll_rounds=1
        )

    assert html == "<html>ok</html>"
    assert ("wait", ".search-result-list", 1000) in driver.events
    assert ("scroll",) in driver.events


@pytest.mark.asyncio
async def test_fetch_scrolls_and_returns_html():
    driver = FakeDriver()
    manager = make_manager(driver)

    async with manager.open_page("nowcoder") as page:
        html = await manager.fetch(page, "https://www.nowcoder.com", wait_selector=".discuss-list", scroll_rounds=3)

    assert html == "<html>ok</html>"
    assert [event for event in driver.events if event[0] == "scroll"] == [("scroll",)] * 3
    assert ("wait", ".discuss-list", 1000) in driver.events


@pytest.mark.asyncio
async def test_failed_health_check_forces_relaunch():
    driver = FakeDriver()
    manager = make_manager(driver)

    assert await manager.health_check() is True

    driver.browsers[0].blank_page_error = RuntimeError("Target closed")
    assert await manager.health_check() is False
    assert manager.is_ready is False

    status = await manager.health_status()
    assert status["status"] == "healthy"
    assert len(driver.launches) == 2


@pytest.mark.asyncio
async def test_launch_failure_raises_crawler_error():
    class BrokenDriver(FakeDriver):
        async def start(self):
            raise OSError("chromium executable missing")

    manager = make_manager(BrokenDriver())

    with pytest.raises(CrawlerError, match="Failed to initialize browser"):
        await manager.start()
    assert manager.is_ready is False


@pytest.mark.asyncio
async def test_shutdown_closes_contexts_then_browser():
    driver = FakeDriver()
    manager = make_manager(driver)
    await manager.start()
    browser = driver.browsers[0]
    leaked = await browser.new_context()
    manager._contexts.add(leaked)

    await manager.shutdown()

    assert leaked.closed
    assert browser.closed
    assert manager.open_contexts == 0
    assert manager.is_ready is False


@pytest.mark.asyncio
async def test_missing_browser_raises_crawler_error():
    class NeverLaunches(BrowserSessionManager):
        async def start(self):
            return None

    manager = NeverLaunches(CrawlerSettings(), playwright_factory=FakeDriver())

    with pytest.raises(CrawlerError, match="Browser is not available"):
        async with manager.open_page("csdn"):
            pass
    assert await manager.health_check() is False
    assert manager.open_contexts == 0

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Dict, List, Union

import pytest

from interview_crawler.cache import MemoryCacheStore, ResultCache

NOWCODER_HTML = """
<html><body>
<div class="discuss-list">
  <div class="discuss-item">
    <a href="/discuss/1001"><span class="discuss-title">字节跳动前端一面面经</span></a>
    <div class="discuss-brief">1. 如何实现一个深拷贝函数并处理循环引用？ 2、React的fiber架构原理是什么？</div>
  </div>
  <div class="discuss-item">
    <a href="/discuss/1002"><span class="discuss-title">周末去哪玩</span></a>
    <div class="discuss-brief">1. 你觉得哪个城市最适合周末旅游度假呢？</div>
  </div>
</div>
</body></html>
"""

CSDN_HTML = """
<html><body>
<div class="search-list">
  <div class="search-list-item">
    <a href="https://blog.csdn.net/u/article/1"><span class="search-title">前端面试题汇总</span></a>
    <p class="search-des">问题：浏览器的事件循环机制是怎样运作的？ 还有 javascript 和 vue 的基础</p>
  </div>
  <div class="search-list-item">
    <a href="https://blog.csdn.net/u/article/2"><span class="search-title">面试复盘</span></a>
    <p class="search-des">1. 如何实现一个深拷贝函数并处理循环引用？</p>
  </div>
</div>
</body></html>
"""


class FakePage:
    def __init__(self, site_id: str) -> None:
        self.site_id = site_id
        self.closed = False


class FakeSession:
    """Stands in for `BrowserSessionManager` with canned HTML per site."""

    def __init__(self, responses: Dict[str, Union[str, Exception]] | None = None) -> None:
        self.responses = responses or {}
        self.pages: List[FakePage] = []
        self.fetched: List[str] = []
        self.healthy = True

    @asynccontextmanager
    async def open_page(self, site_id: str = ""):
        page = FakePage(site_id)
        self.pages.append(page)
        try:
            yield page
        finally:
            page.closed = True

    async def fetch(self, page, url, *, wait_selector=None, scroll_rounds=0):
        self.fetched.append(url)
        response = self.responses.get(page.site_id, "")
        if isinstance(response, Exception):
            raise response
        return response

    async def health_check(self) -> bool:
        return self.healthy


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def memory_cache() -> ResultCache:
    return ResultCache(MemoryCacheStore())


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()

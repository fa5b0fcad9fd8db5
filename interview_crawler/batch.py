"""Batch crawling of individual interview-experience pages via Crawl4AI.

Each URL is fetched once, its text is split into paragraphs and run through
the question extractor. A failing URL yields a `success=False` entry and never
affects the others.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, List, Optional, Sequence
from urllib.parse import urlparse

from crawl4ai import AsyncWebCrawler, BrowserConfig, CacheMode, CrawlerRunConfig

from .config import CrawlerSettings
from .extractor import QuestionExtractor
from .models import BatchCrawlResult, RawItem
from .ranking import dedupe_questions
from .stealth import random_profile

LOGGER = logging.getLogger(__name__)


def split_paragraphs(text: str) -> List[str]:
    """Break page text into non-empty paragraphs on blank lines."""
    paragraphs: List[str] = []
    current: List[str] = []
    for line in text.splitlines():
        if line.strip():
            current.append(line.strip())
        elif current:
            paragraphs.append("\n".join(current))
            current = []
    if current:
        paragraphs.append("\n".join(current))
    return paragraphs


class BatchCrawler:
    """Crawls a list of URLs with bounded concurrency and extracts questions from each."""

    def __init__(
        self,
        settings: CrawlerSettings | None = None,
        *,
        extractor: QuestionExtractor | None = None,
        crawler_factory: Callable = AsyncWebCrawler,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or CrawlerSettings()
        self.extractor = extractor or QuestionExtractor()
        self._crawler_factory = crawler_factory
        self._sleep = sleep
        self._rng = rng or random.Random()

        profile = random_profile(self._rng, locale=self.settings.locale)
        self._browser_config = BrowserConfig(
            browser_type=self.settings.browser,
            headless=self.settings.headless,
            user_agent=profile.user_agent,
            viewport_width=profile.viewport_width,
            viewport_height=profile.viewport_height,
            extra_args=list(self.settings.launch_args),
        )

    async def crawl_batch(
        self,
        urls: Sequence[str],
        *,
        category: str = "",
        css_selector: Optional[str] = None,
    ) -> List[BatchCrawlResult]:
        """Return one result per URL, in input order."""
        if not urls:
            return []

        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async with self._crawler_factory(config=self._browser_config) as crawler:

            async def run(position: int, url: str) -> BatchCrawlResult:
                async with semaphore:
                    if position > 1:
                        await self._sleep(
                            self._rng.uniform(self.settings.min_delay_seconds, self.settings.max_delay_seconds)
                        )
                    LOGGER.info("[%d/%d] Fetching %s", position, len(urls), url)
                    return await self._crawl_one(crawler, url, category=category, css_selector=css_selector)

            results = await asyncio.gather(*(run(position, url) for position, url in enumerate(urls, start=1)))

        succeeded = sum(1 for result in results if result.success)
        LOGGER.info("Batch finished: %d/%d URL(s) succeeded", succeeded, len(results))
        return list(results)

    async def _crawl_one(
        self,
        crawler,
        url: str,
        *,
        category: str,
        css_selector: Optional[str],
    ) -> BatchCrawlResult:
        try:
            result = await crawler.arun(
                url=url,
                config=CrawlerRunConfig(
                    css_selector=css_selector,
                    cache_mode=CacheMode.BYPASS,
                    page_timeout=self.settings.navigation_timeout_ms,
                ),
            )
        except Exception as exc:
            LOGGER.error("Crawler failed for %s: %s", url, exc)
            return BatchCrawlResult(url=url, success=False, error=str(exc) or type(exc).__name__)

        if not result.success:
            message = result.error_message or "Crawl failed without an error message"
            LOGGER.warning("Extraction failed for %s: %s", url, message)
            return BatchCrawlResult(url=url, success=False, error=message)

        title = (result.metadata or {}).get("title") or ""
        text = str(result.markdown or "")
        if not text.strip():
            LOGGER.warning("No content returned for %s", url)

        source = urlparse(url).netloc or url
        items = [RawItem(title=title, content=paragraph, url=url) for paragraph in split_paragraphs(text)]
        questions = dedupe_questions(
            self.extractor.extract_from_items(items, category=category, keyword="", source=source)
        )
        LOGGER.info("Captured %d question(s) from %s", len(questions), url)
        return BatchCrawlResult(url=url, success=True, title=title or None, questions=questions)

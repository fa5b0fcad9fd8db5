"""Per-request crawl coordination across sites.

One failing site never stops its siblings; its error ends up in the result's
`error` field. When nothing live survives, canned sample data is served and
the result's `status` says so.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .adapters import SiteRegistry
from .cache import ResultCache, SingleFlight, fingerprint
from .config import DEFAULT_CATEGORY_KEYWORDS, CrawlerSettings
from .extractor import QuestionExtractor
from .fallback import SAMPLE_SOURCE, generate_sample_questions
from .logging_utils import log_event
from .models import CrawledQuestion, CrawlRequest, CrawlResult, CrawlStatus, now_millis
from .ranking import dedupe_and_rank
from .session import BrowserSession

LOGGER = logging.getLogger(__name__)

SiteOutcome = Tuple[List[CrawledQuestion], Optional[str]]


class CrawlOrchestrator:
    """Runs cache lookup, bounded per-site crawling, ranking, fallback and cache store."""

    def __init__(
        self,
        *,
        session: BrowserSession,
        cache: ResultCache,
        registry: SiteRegistry | None = None,
        extractor: QuestionExtractor | None = None,
        settings: CrawlerSettings | None = None,
        category_keywords: Mapping[str, Sequence[str]] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.session = session
        self.cache = cache
        self.registry = registry or SiteRegistry()
        self.extractor = extractor or QuestionExtractor()
        self.settings = settings or CrawlerSettings()
        self.category_keywords: Dict[str, Sequence[str]] = dict(
            category_keywords if category_keywords is not None else DEFAULT_CATEGORY_KEYWORDS
        )
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._semaphore = asyncio.Semaphore(self.settings.max_concurrency)
        self._single_flight = SingleFlight()

    async def crawl_questions(self, request: CrawlRequest) -> CrawlResult:
        """Serve from cache when possible, otherwise crawl, rank, cache and return."""
        key = fingerprint(request)

        cached = await self._cached_result(key, request)
        if cached is not None:
            return cached

        # Followers share the leader's result, which is sized by the leader's max_questions.
        result = await self._single_flight.run(key, lambda: self._crawl_and_store(key, request))
        return self._limit(result, request)

    def select_keywords(self, request: CrawlRequest) -> List[str]:
        """Explicit keywords, else the category table, else the category itself."""
        if request.keywords:
            keywords = list(request.keywords)
        else:
            keywords = list(self.category_keywords.get(request.category) or [request.category])
        return keywords[: self.settings.keywords_per_site]

    async def health_check(self) -> bool:
        checker = getattr(self.session, "health_check", None)
        if checker is None:
            return True
        return await checker()

    async def _cached_result(self, key: str, request: CrawlRequest) -> Optional[CrawlResult]:
        cached = await self.cache.get(key)
        if cached is None or not cached.success or not cached.questions:
            return None

        log_event(LOGGER, logging.INFO, "cache_hit", key=key, questions=len(cached.questions))
        return self._limit(cached.with_cached(), request)

    @staticmethod
    def _limit(result: CrawlResult, request: CrawlRequest) -> CrawlResult:
        if len(result.questions) <= request.max_questions:
            return result
        return result.model_copy(update={"questions": result.questions[: request.max_questions]})

    async def _crawl_and_store(self, key: str, request: CrawlRequest) -> CrawlResult:
        # A previous flight may have populated the cache while this one was queued.
        cached = await self._cached_result(key, request)
        if cached is not None:
            return cached

        started = time.perf_counter()
        sites = request.sites
        log_event(LOGGER, logging.INFO, "crawl_started", category=request.category, sites=sites)

        outcomes = await asyncio.gather(*(self._crawl_site_bounded(site_id, request) for site_id in sites))

        collected: List[CrawledQuestion] = []
        errors: List[str] = []
        for questions, error in outcomes:
            collected.extend(questions)
            if error:
                errors.append(error)

        ranked = dedupe_and_rank(collected, request.max_questions)
        label = ", ".join(self.registry.display_name(site_id) for site_id in sites)

        if ranked:
            status = CrawlStatus.LIVE
            questions = ranked
            source = label
        else:
            LOGGER.info("No questions found for %s, serving sample data", request.category)
            questions = generate_sample_questions(request.category, request.max_questions)
            status = CrawlStatus.DEGRADED_FALLBACK if questions else CrawlStatus.FAILED
            source = f"{label} ({SAMPLE_SOURCE})" if label else SAMPLE_SOURCE

        result = CrawlResult(
            success=bool(questions),
            questions=questions,
            source=source,
            timestamp=now_millis(),
            error="; ".join(errors) if errors else None,
            status=status,
        )

        await self.cache.set(key, result)

        log_event(
            LOGGER,
            logging.INFO,
            "crawl_completed",
            category=request.category,
            sites=sites,
            keywords=request.keywords,
            max_questions=request.max_questions,
            found=len(ranked),
            status=status.value,
            errors=errors,
            duration_ms=round((time.perf_counter() - started) * 1000),
        )
        return result

    async def _crawl_site_bounded(self, site_id: str, request: CrawlRequest) -> SiteOutcome:
        async with self._semaphore:
            started = time.perf_counter()
            try:
                questions = await self._crawl_site(site_id, request)
            except Exception as exc:
                log_event(
                    LOGGER,
                    logging.ERROR,
                    "site_crawl_failed",
                    site=site_id,
                    error=str(exc),
                    duration_ms=round((time.perf_counter() - started) * 1000),
                )
                return [], f"Failed to crawl {site_id}: {exc}"

            log_event(
                LOGGER,
                logging.INFO,
                "site_crawled",
                site=site_id,
                questions=len(questions),
                duration_ms=round((time.perf_counter() - started) * 1000),
            )
            return questions, None

    async def _crawl_site(self, site_id: str, request: CrawlRequest) -> List[CrawledQuestion]:
        adapter = self.registry.get(site_id)
        keywords = self.select_keywords(request)
        questions: List[CrawledQuestion] = []
        failures: List[Exception] = []

        async with self.session.open_page(site_id) as page:
            for position, keyword in enumerate(keywords):
                if position > 0:
                    await self._pause()

                url = adapter.build_search_url(keyword)
                try:
                    html = await self.session.fetch(
                        page,
                        url,
                        wait_selector=adapter.config.selectors.container,
                        scroll_rounds=adapter.config.scroll_rounds,
                    )
                    items = adapter.extract_raw_items(html)
                except Exception as exc:
                    failures.append(exc)
                    log_event(
                        LOGGER, logging.WARNING, "keyword_crawl_failed",
                        site=site_id, keyword=keyword, url=url, error=str(exc),
                    )
                    continue

                found = self.extractor.extract_from_items(
                    items, category=request.category, keyword=keyword, source=adapter.name
                )
                questions.extend(found)
                log_event(
                    LOGGER, logging.DEBUG, "keyword_crawled",
                    site=site_id, keyword=keyword, items=len(items), questions=len(found),
                )

        if keywords and len(failures) == len(keywords):
            raise failures[0]
        return questions

    async def _pause(self) -> None:
        delay = self._rng.uniform(self.settings.min_delay_seconds, self.settings.max_delay_seconds)
        await self._sleep(delay)

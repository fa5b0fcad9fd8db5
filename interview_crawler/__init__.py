"""Interview question crawling, extraction and caching toolkit."""

from .adapters import SiteAdapter, SiteRegistry
from .batch import BatchCrawler
from .cache import MemoryCacheStore, RedisCacheStore, ResultCache, create_cache_store, fingerprint
from .config import CacheSettings, CrawlerSettings, Settings, load_settings
from .extractor import QuestionExtractor
from .fallback import generate_sample_questions
from .models import (
    BatchCrawlResult,
    CrawledQuestion,
    CrawlRequest,
    CrawlResult,
    CrawlStatus,
    RawItem,
    SiteAdapterConfig,
)
from .orchestrator import CrawlOrchestrator
from .ranking import dedupe_and_rank
from .session import BrowserSessionManager

__all__ = [
    "BatchCrawler",
    "BatchCrawlResult",
    "BrowserSessionManager",
    "CacheSettings",
    "CrawledQuestion",
    "CrawlerSettings",
    "CrawlOrchestrator",
    "CrawlRequest",
    "CrawlResult",
    "CrawlStatus",
    "MemoryCacheStore",
    "QuestionExtractor",
    "RawItem",
    "RedisCacheStore",
    "ResultCache",
    "Settings",
    "SiteAdapter",
    "SiteAdapterConfig",
    "SiteRegistry",
    "create_cache_store",
    "dedupe_and_rank",
    "fingerprint",
    "generate_sample_questions",
    "load_settings",
]

"""Data model for crawl requests, extracted questions and crawl results.

Field aliases follow the camelCase wire format consumed by the HTTP layer; the
Python side always uses snake_case names.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

Difficulty = Literal["easy", "medium", "hard"]

SUPPORTED_CATEGORIES = (
    "前端开发",
    "后端开发",
    "算法岗",
    "测试开发",
    "运维开发",
    "产品经理",
    "数据分析",
)

DEFAULT_SITES = ("nowcoder", "csdn", "juejin")

MIN_QUESTION_LENGTH = 10
MAX_QUESTION_LENGTH = 250

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


class CrawlStatus(str, Enum):
    """Distinguishes live data from fallback data in a crawl result."""

    LIVE = "live"
    DEGRADED_FALLBACK = "degraded-fallback"
    FAILED = "failed"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CrawlRequest(_WireModel):
    """Parameters of one question crawl."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    category: str = Field(min_length=1)
    keywords: Optional[List[str]] = None
    target_sites: Optional[List[str]] = None
    max_questions: int = Field(default=20, gt=0)

    @field_validator("category")
    @classmethod
    def _strip_category(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("category must not be blank")
        return value

    @field_validator("keywords", "target_sites")
    @classmethod
    def _clean_strings(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        cleaned: List[str] = []
        for entry in value:
            entry = entry.strip()
            if entry and entry not in cleaned:
                cleaned.append(entry)
        return cleaned

    @property
    def sites(self) -> List[str]:
        """Requested site ids, or the default set when none were given."""
        if self.target_sites is None:
            return list(DEFAULT_SITES)
        return list(self.target_sites)


class SiteSelectors(BaseModel):
    """CSS selectors describing where questions live on a search page."""

    model_config = ConfigDict(frozen=True)

    container: str
    item: str
    title: str
    content: str
    link: str = "a"


class SiteAdapterConfig(BaseModel):
    """Static description of one supported source."""

    model_config = ConfigDict(frozen=True)

    site_id: str
    name: str
    base_url: str
    search_url: str
    query_param: str
    query_suffix: str = ""
    extra_params: Dict[str, str] = Field(default_factory=dict)
    selectors: SiteSelectors
    max_items: int = Field(default=8, gt=0)
    scroll_rounds: int = Field(default=0, ge=0)


class RawItem(BaseModel):
    """Title, snippet and link lifted from a single search-result entry."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    content: str = ""
    url: str = ""

    @property
    def text(self) -> str:
        return f"{self.title} {self.content}"


class CrawledQuestion(_WireModel):
    """A classified interview question."""

    id: str
    question: str = Field(min_length=MIN_QUESTION_LENGTH, max_length=MAX_QUESTION_LENGTH)
    category: str
    difficulty: Difficulty
    type: str
    source: str
    company: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    crawled_at: datetime = Field(default_factory=lambda: _utc_now_ms())

    @field_validator("crawled_at")
    @classmethod
    def _millisecond_precision(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.replace(microsecond=value.microsecond // 1000 * 1000)

    @field_serializer("crawled_at", when_used="json")
    def _epoch_millis(self, value: datetime) -> int:
        return (value - EPOCH) // _ONE_MS

    @property
    def dedup_key(self) -> str:
        return "".join(self.question.lower().split())


class CrawlResult(_WireModel):
    """Outcome of one crawl request. Never mutated once built."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    success: bool
    questions: List[CrawledQuestion] = Field(default_factory=list)
    source: str
    timestamp: int
    error: Optional[str] = None
    cached: Optional[bool] = None
    status: CrawlStatus = CrawlStatus.LIVE

    def with_cached(self) -> "CrawlResult":
        """Return a copy flagged as served from cache."""
        return self.model_copy(update={"cached": True})

    def to_response(self) -> dict:
        """Serialise to the camelCase response shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_cache_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_cache_payload(cls, payload: dict) -> "CrawlResult":
        return cls.model_validate(payload)


class BatchCrawlResult(_WireModel):
    """Outcome for one URL in a batch crawl."""

    url: str
    success: bool
    title: Optional[str] = None
    questions: List[CrawledQuestion] = Field(default_factory=list)
    error: Optional[str] = None


def _utc_now_ms() -> datetime:
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def now_millis() -> int:
    return (datetime.now(timezone.utc) - EPOCH) // _ONE_MS

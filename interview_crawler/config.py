"""Settings for the crawler, loaded from YAML with environment overrides.

Edit `config/settings.yaml` for day-to-day tuning; the dataclass defaults below
apply whenever a key is missing from the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

import yaml

from .errors import ConfigurationError

DEFAULT_LAUNCH_ARGS: Tuple[str, ...] = (
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
)

DEFAULT_CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "前端开发": ["前端", "javascript", "react", "vue", "css", "webpack"],
    "后端开发": ["后端", "java", "spring", "mysql", "redis", "microservice"],
    "算法岗": ["算法", "leetcode", "数据结构", "动态规划", "机器学习"],
    "测试开发": ["测试", "自动化测试", "性能测试", "selenium", "jest"],
    "运维开发": ["运维", "devops", "kubernetes", "docker", "linux"],
    "产品经理": ["产品经理", "需求分析", "用户体验", "PRD", "竞品分析"],
    "数据分析": ["数据分析", "sql", "python", "tableau", "数据挖掘"],
}


@dataclass(slots=True)
class CrawlerSettings:
    """Headless browser options and crawl cadence."""

    browser: str = "chromium"
    headless: bool = True
    navigation_timeout_ms: int = 30_000
    selector_timeout_ms: int = 10_000
    scroll_pause_seconds: float = 1.5
    min_delay_seconds: float = 1.0
    max_delay_seconds: float = 3.0
    keywords_per_site: int = 2
    max_concurrency: int = 2
    locale: str = "zh-CN"
    launch_args: Tuple[str, ...] = DEFAULT_LAUNCH_ARGS


@dataclass(slots=True)
class CacheSettings:
    """Where crawl results are cached and for how long."""

    backend: str = "memory"  # "redis" in deployments
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "interview_system:"
    ttl_seconds: int = 86_400


@dataclass(slots=True)
class Settings:
    crawler: CrawlerSettings = field(default_factory=CrawlerSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    sites: Dict[str, dict] = field(default_factory=dict)
    category_keywords: Dict[str, List[str]] = field(
        default_factory=lambda: {key: list(value) for key, value in DEFAULT_CATEGORY_KEYWORDS.items()}
    )


def read_settings(path: Path | str) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping at the top level")
    return data


def apply_environment(raw: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Overlay the supported environment variables onto raw settings."""
    environ = os.environ if environ is None else environ
    crawler_cfg = raw.setdefault("crawler", {})
    cache_cfg = raw.setdefault("cache", {})

    if "CRAWLER_TIMEOUT" in environ:
        crawler_cfg["navigation_timeout_ms"] = int(environ["CRAWLER_TIMEOUT"])
    if "CRAWLER_HEADLESS" in environ:
        crawler_cfg["headless"] = environ["CRAWLER_HEADLESS"].strip().lower() not in {"0", "false", "no"}
    if "CRAWLER_MAX_CONCURRENCY" in environ:
        crawler_cfg["max_concurrency"] = int(environ["CRAWLER_MAX_CONCURRENCY"])
    if "REDIS_URL" in environ:
        cache_cfg["redis_url"] = environ["REDIS_URL"]
    if "CACHE_BACKEND" in environ:
        cache_cfg["backend"] = environ["CACHE_BACKEND"]

    return raw


def build_settings(raw: Mapping) -> Settings:
    crawler_cfg = dict(raw.get("crawler") or {})
    cache_cfg = dict(raw.get("cache") or {})

    if "launch_args" in crawler_cfg:
        crawler_cfg["launch_args"] = tuple(crawler_cfg["launch_args"])

    try:
        crawler = CrawlerSettings(**crawler_cfg)
        cache = CacheSettings(**cache_cfg)
    except TypeError as exc:
        raise ConfigurationError(f"Unknown settings key: {exc}") from exc

    if crawler.max_concurrency < 1:
        raise ConfigurationError("crawler.max_concurrency must be at least 1")
    if crawler.min_delay_seconds > crawler.max_delay_seconds:
        raise ConfigurationError("crawler.min_delay_seconds must not exceed max_delay_seconds")
    if cache.backend not in {"memory", "redis"}:
        raise ConfigurationError(f"Unsupported cache backend: {cache.backend}")

    settings = Settings(crawler=crawler, cache=cache, sites=dict(raw.get("sites") or {}))
    settings.category_keywords.update(raw.get("category_keywords") or {})
    return settings


def load_settings(path: Path | str | None = None) -> Settings:
    """Read the YAML file (when given), apply environment overrides and validate."""
    raw = read_settings(path) if path is not None else {}
    return build_settings(apply_environment(raw))

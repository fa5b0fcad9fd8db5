from __future__ import annotations

import pytest

from interview_crawler.config import (
    DEFAULT_LAUNCH_ARGS,
    apply_environment,
    build_settings,
    load_settings,
    read_settings,
)
from interview_crawler.errors import ConfigurationError

SETTINGS_YAML = """
crawler:
  headless: false
  max_concurrency: 3
  launch_args: ["--no-sandbox"]
cache:
  backend: redis
  ttl_seconds: 600
sites:
  csdn:
    max_items: 4
category_keywords:
  安全工程: [渗透测试, web安全]
"""


def test_read_settings_requires_existing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_settings(tmp_path / "missing.yaml")


def test_build_settings_from_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS_YAML, encoding="utf-8")

    settings = build_settings(read_settings(path))

    assert settings.crawler.headless is False
    assert settings.crawler.max_concurrency == 3
    assert settings.crawler.launch_args == ("--no-sandbox",)
    assert settings.cache.backend == "redis"
    assert settings.cache.ttl_seconds == 600
    assert settings.sites == {"csdn": {"max_items": 4}}
    assert settings.category_keywords["安全工程"] == ["渗透测试", "web安全"]
    assert settings.category_keywords["前端开发"][0] == "前端"


def test_defaults_apply_without_a_file(monkeypatch):
    for name in ("CRAWLER_TIMEOUT", "CRAWLER_HEADLESS", "CRAWLER_MAX_CONCURRENCY", "REDIS_URL", "CACHE_BACKEND"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.crawler.navigation_timeout_ms == 30000
    assert settings.crawler.launch_args == DEFAULT_LAUNCH_ARGS
    assert settings.cache.backend == "memory"
    assert settings.cache.ttl_seconds == 86400


def test_environment_overrides_file_values():
    raw = apply_environment(
        {"crawler": {"headless": True}},
        {
            "CRAWLER_TIMEOUT": "45000",
            "CRAWLER_HEADLESS": "false",
            "CRAWLER_MAX_CONCURRENCY": "4",
            "REDIS_URL": "redis://cache:6379/2",
            "CACHE_BACKEND": "redis",
        },
    )

    settings = build_settings(raw)

    assert settings.crawler.navigation_timeout_ms == 45000
    assert settings.crawler.headless is False
    assert settings.crawler.max_concurrency == 4
    assert settings.cache.redis_url == "redis://cache:6379/2"
    assert settings.cache.backend == "redis"


@pytest.mark.parametrize(
    "raw",
    [
        {"cache": {"backend": "memcached"}},
        {"crawler": {"max_concurrency": 0}},
        {"crawler": {"min_delay_seconds": 5, "max_delay_seconds": 1}},
        {"crawler": {"unknown_key": 1}},
    ],
)
def test_invalid_settings_are_rejected(raw):
    with pytest.raises(ConfigurationError):
        build_settings(raw)

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest

from interview_crawler.adapters import SiteRegistry
from interview_crawler.errors import ConfigurationError, UnknownSiteError

from .conftest import CSDN_HTML, NOWCODER_HTML


def test_builtin_sites_are_registered():
    registry = SiteRegistry()

    assert registry.ids() == ["nowcoder", "csdn", "juejin"]
    assert registry.display_name("juejin") == "掘金"
    assert registry.display_name("unknown") == "unknown"


def test_search_urls_carry_keyword_suffix_and_static_params():
    registry = SiteRegistry()

    nowcoder = urlparse(registry.build_search_url("nowcoder", "react"))
    csdn = urlparse(registry.build_search_url("csdn", "redis"))

    assert nowcoder.netloc == "www.nowcoder.com"
    assert parse_qs(nowcoder.query) == {"keyword": ["react 面试"]}
    assert parse_qs(csdn.query) == {"q": ["redis 面试题"], "t": ["blog"]}


def test_extract_raw_items_reads_selectors_and_resolves_links():
    items = SiteRegistry().extract_raw_items("nowcoder", NOWCODER_HTML)

    assert len(items) == 2
    assert items[0].title == "字节跳动前端一面面经"
    assert items[0].content.startswith("1. 如何实现")
    assert items[0].url == "https://www.nowcoder.com/discuss/1001"


def test_extract_raw_items_respects_max_items():
    registry = SiteRegistry.from_settings({"csdn": {"max_items": 1}})

    items = registry.extract_raw_items("csdn", CSDN_HTML)

    assert [item.url for item in items] == ["https://blog.csdn.net/u/article/1"]


def test_extract_raw_items_on_empty_page():
    assert SiteRegistry().extract_raw_items("juejin", "") == []
    assert SiteRegistry().extract_raw_items("juejin", "<html><body>blocked</body></html>") == []


def test_unknown_site_fails_fast():
    with pytest.raises(UnknownSiteError, match="Unsupported site: leetcode"):
        SiteRegistry().get("leetcode")


def test_settings_can_add_a_new_site():
    registry = SiteRegistry.from_settings(
        {
            "segmentfault": {
                "name": "思否",
                "base_url": "https://segmentfault.com",
                "search_url": "https://segmentfault.com/search",
                "query_param": "q",
                "selectors": {
                    "container": ".search-result",
                    "item": ".item",
                    "title": ".title",
                    "content": ".excerpt",
                },
            }
        }
    )

    assert "segmentfault" in registry
    assert registry.build_search_url("segmentfault", "go") == "https://segmentfault.com/search?q=go"


def test_invalid_site_definition_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        SiteRegistry.from_settings({"broken": {"name": "Broken"}})

"""Site adapters: search-URL construction and search-page parsing per source.

Adding a source means adding one entry to `BUILTIN_SITES` (or to the `sites`
section of the settings file); the orchestrator never branches on site ids.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping
from urllib.parse import urlencode, urljoin

from bs4 import BeautifulSoup
from pydantic import ValidationError

from .errors import ConfigurationError, UnknownSiteError
from .models import RawItem, SiteAdapterConfig, SiteSelectors

LOGGER = logging.getLogger(__name__)


BUILTIN_SITES: Dict[str, SiteAdapterConfig] = {
    "nowcoder": SiteAdapterConfig(
        site_id="nowcoder",
        name="牛客网",
        base_url="https://www.nowcoder.com",
        search_url="https://www.nowcoder.com/discuss/tag/639",
        query_param="keyword",
        query_suffix=" 面试",
        selectors=SiteSelectors(
            container=".discuss-list",
            item=".discuss-item",
            title=".discuss-title",
            content=".discuss-brief",
        ),
        max_items=10,
        scroll_rounds=3,
    ),
    "csdn": SiteAdapterConfig(
        site_id="csdn",
        name="CSDN",
        base_url="https://blog.csdn.net",
        search_url="https://so.csdn.net/so/search",
        query_param="q",
        query_suffix=" 面试题",
        extra_params={"t": "blog"},
        selectors=SiteSelectors(
            container=".search-list",
            item=".search-list-item",
            title=".search-title",
            content=".search-des",
        ),
        max_items=8,
    ),
    "juejin": SiteAdapterConfig(
        site_id="juejin",
        name="掘金",
        base_url="https://juejin.cn",
        search_url="https://juejin.cn/search",
        query_param="query",
        query_suffix=" 面试",
        selectors=SiteSelectors(
            container=".search-result-list",
            item=".search-result-item",
            title=".title",
            content=".abstract",
        ),
        max_items=8,
    ),
}


@dataclass(frozen=True, slots=True)
class SiteAdapter:
    """Pairs a site's static configuration with its (pure) parsing logic."""

    config: SiteAdapterConfig

    @property
    def site_id(self) -> str:
        return self.config.site_id

    @property
    def name(self) -> str:
        return self.config.name

    def build_search_url(self, keyword: str) -> str:
        params = {self.config.query_param: f"{keyword}{self.config.query_suffix}"}
        params.update(self.config.extra_params)
        return f"{self.config.search_url}?{urlencode(params)}"

    def extract_raw_items(self, html: str) -> List[RawItem]:
        """Parse fetched page HTML into raw items. No I/O happens here."""
        if not html:
            return []

        selectors = self.config.selectors
        soup = BeautifulSoup(html, "html.parser")
        items: List[RawItem] = []

        for node in soup.select(selectors.item)[: self.config.max_items]:
            title = self._text_of(node, selectors.title)
            content = self._text_of(node, selectors.content)
            if not title and not content:
                continue

            link = node.select_one(selectors.link)
            href = link.get("href", "") if link is not None else ""
            url = urljoin(self.config.base_url, href) if href else ""
            items.append(RawItem(title=title, content=content, url=url))

        return items

    @staticmethod
    def _text_of(node, selector: str) -> str:
        found = node.select_one(selector)
        if found is None:
            return ""
        return found.get_text(" ", strip=True)


class SiteRegistry:
    """Mapping from site id to adapter."""

    def __init__(self, configs: Iterable[SiteAdapterConfig] | None = None) -> None:
        self._adapters: Dict[str, SiteAdapter] = {}
        for config in configs if configs is not None else BUILTIN_SITES.values():
            self.register(config)

    @classmethod
    def from_settings(cls, sites: Mapping[str, Mapping] | None) -> "SiteRegistry":
        """Build the registry from built-ins plus the settings file `sites` section.

        Entries under an existing id replace the built-in definition field by field.
        """
        registry = cls()
        for site_id, raw in (sites or {}).items():
            if not isinstance(raw, Mapping):
                raise ConfigurationError(f"Site entry '{site_id}' must be a mapping")

            base: dict = {}
            if site_id in BUILTIN_SITES:
                base = BUILTIN_SITES[site_id].model_dump()
            merged = {**base, **raw, "site_id": site_id}
            if "selectors" in raw and "selectors" in base:
                merged["selectors"] = {**base["selectors"], **raw["selectors"]}

            try:
                registry.register(SiteAdapterConfig.model_validate(merged))
            except ValidationError as exc:
                raise ConfigurationError(f"Invalid site definition '{site_id}': {exc}") from exc
            LOGGER.debug("Configured site adapter %s", site_id)
        return registry

    def register(self, config: SiteAdapterConfig) -> None:
        self._adapters[config.site_id] = SiteAdapter(config)

    def get(self, site_id: str) -> SiteAdapter:
        adapter = self._adapters.get(site_id)
        if adapter is None:
            raise UnknownSiteError(site_id, self.ids())
        return adapter

    def ids(self) -> List[str]:
        return list(self._adapters)

    def display_name(self, site_id: str) -> str:
        adapter = self._adapters.get(site_id)
        return adapter.name if adapter is not None else site_id

    def build_search_url(self, site_id: str, keyword: str) -> str:
        return self.get(site_id).build_search_url(keyword)

    def extract_raw_items(self, site_id: str, html: str) -> List[RawItem]:
        return self.get(site_id).extract_raw_items(html)

    def __contains__(self, site_id: object) -> bool:
        return site_id in self._adapters

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._adapters)

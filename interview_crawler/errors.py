"""Exception hierarchy shared by the crawler components."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for every error raised by the crawling pipeline."""

    def __init__(self, message: str, *, site: str | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.site = site
        self.url = url


class ConfigurationError(CrawlerError):
    """Raised for invalid settings or adapter definitions."""


class UnknownSiteError(ConfigurationError):
    """Raised when a request references a site id with no registered adapter."""

    def __init__(self, site_id: str, known: list[str]) -> None:
        allowed = ", ".join(sorted(known)) or "<none>"
        super().__init__(f"Unsupported site: {site_id} (known sites: {allowed})", site=site_id)


class NavigationError(CrawlerError):
    """Raised when a page times out or fails to load."""


class ExtractionError(CrawlerError):
    """Raised when a single raw item cannot be turned into questions."""


class CacheError(CrawlerError):
    """Base class for cache store failures."""


class CacheWriteError(CacheError):
    """Raised when a crawl result could not be persisted to the cache."""

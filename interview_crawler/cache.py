"""Fingerprinted TTL cache for crawl results.

Reads are best effort (any failure is a miss); writes raise `CacheWriteError`
so callers never assume a result was persisted when it was not.
"""

from __future__ import annotations

import asyncio
import fnmatch
import hashlib
import json
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, Protocol, Tuple, TypeVar

import redis.asyncio as redis
from pydantic import ValidationError

from .config import CacheSettings
from .errors import CacheWriteError
from .models import CrawlRequest, CrawlResult

LOGGER = logging.getLogger(__name__)

FINGERPRINT_PREFIX = "interview:"
DEFAULT_TTL_SECONDS = 86_400

T = TypeVar("T")


def fingerprint(request: CrawlRequest) -> str:
    """Order-insensitive cache key over category, keywords and target sites."""
    # An empty keyword list selects the category keywords, same as no list.
    keywords = sorted(request.keywords) if request.keywords else None
    sites = sorted(request.target_sites) if request.target_sites is not None else None
    canonical = json.dumps(
        {"category": request.category, "keywords": keywords, "sites": sites},
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
    )
    return FINGERPRINT_PREFIX + hashlib.md5(canonical.encode("utf-8")).hexdigest()


class CacheStore(Protocol):
    async def get(self, key: str) -> Optional[dict]: ...

    async def set(self, key: str, value: dict, ttl_seconds: Optional[int] = None) -> None: ...

    async def delete_by_pattern(self, pattern: str) -> int: ...

    async def close(self) -> None: ...


class MemoryCacheStore:
    """In-process store for single-worker runs and tests.

    Values are kept as JSON text so readers never share objects with writers.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[Optional[float], str]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[dict]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                return None
            return json.loads(payload)

    async def set(self, key: str, value: dict, ttl_seconds: Optional[int] = None) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        now = self._clock()
        expires_at = now + ttl_seconds if ttl_seconds else None
        async with self._lock:
            self._sweep(now)
            self._entries[key] = (expires_at, payload)

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep(self, now: float) -> None:
        expired = [
            key for key, (expires_at, _) in self._entries.items() if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._entries[key]

    async def delete_by_pattern(self, pattern: str) -> int:
        async with self._lock:
            matched = [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]
            for key in matched:
                del self._entries[key]
        return len(matched)

    async def close(self) -> None:
        async with self._lock:
            self._entries.clear()


class RedisCacheStore:
    """Redis-backed store; every key is namespaced with `key_prefix`."""

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        key_prefix: str = "interview_system:",
        client: Optional[redis.Redis] = None,
    ) -> None:
        self._prefix = key_prefix
        self._client = client or redis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Optional[dict]:
        raw = await self._client.get(self._prefix + key)
        LOGGER.debug("Cache get %s hit=%s", key, raw is not None)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: dict, ttl_seconds: Optional[int] = None) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        if ttl_seconds:
            await self._client.set(self._prefix + key, payload, ex=ttl_seconds)
        else:
            await self._client.set(self._prefix + key, payload)
        LOGGER.debug("Cache set %s ttl=%s", key, ttl_seconds)

    async def delete_by_pattern(self, pattern: str) -> int:
        keys = [key async for key in self._client.scan_iter(match=self._prefix + pattern)]
        if not keys:
            return 0
        deleted = await self._client.delete(*keys)
        LOGGER.info("Cache pattern delete %s removed %d key(s)", pattern, deleted)
        return int(deleted)

    async def close(self) -> None:
        await self._client.aclose()


def create_cache_store(settings: CacheSettings) -> CacheStore:
    if settings.backend == "redis":
        return RedisCacheStore(settings.redis_url, key_prefix=settings.key_prefix)
    return MemoryCacheStore()


class ResultCache:
    """Typed `CrawlResult` cache on top of a JSON `CacheStore`."""

    def __init__(self, store: CacheStore, *, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def get(self, key: str) -> Optional[CrawlResult]:
        try:
            payload = await self.store.get(key)
        except Exception as exc:
            LOGGER.warning("Cache read failed for %s, treating as miss: %s", key, exc)
            return None

        if payload is None:
            return None

        try:
            return CrawlResult.from_cache_payload(payload)
        except (ValidationError, TypeError) as exc:
            LOGGER.warning("Discarding unreadable cache entry %s: %s", key, exc)
            return None

    async def set(self, key: str, result: CrawlResult, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        try:
            await self.store.set(key, result.to_cache_payload(), ttl)
        except Exception as exc:
            LOGGER.error("Cache write failed for %s: %s", key, exc)
            raise CacheWriteError(f"Failed to cache crawl result {key}: {exc}") from exc

    async def invalidate(self, pattern: str = FINGERPRINT_PREFIX + "*") -> int:
        return await self.store.delete_by_pattern(pattern)

    async def close(self) -> None:
        await self.store.close()


class SingleFlight:
    """Collapses concurrent calls for the same key onto one running coroutine."""

    def __init__(self) -> None:
        self._inflight: Dict[str, asyncio.Future] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        existing = self._inflight.get(key)
        if existing is not None:
            LOGGER.debug("Joining in-flight crawl %s", key)
            return await asyncio.shield(existing)

        task = asyncio.ensure_future(factory())
        self._inflight[key] = task
        try:
            return await asyncio.shield(task)
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

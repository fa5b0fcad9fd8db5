"""Command line interface for the interview question crawler."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from interview_crawler import (
    BatchCrawler,
    BrowserSessionManager,
    CrawlOrchestrator,
    CrawlRequest,
    ResultCache,
    Settings,
    SiteRegistry,
    create_cache_store,
)
from interview_crawler.config import apply_environment, build_settings, read_settings

LOGGER = logging.getLogger(__name__)


def configure_logging(logging_path: Path) -> None:
    if not logging_path.exists():
        logging.basicConfig(level=logging.INFO)
        LOGGER.warning("Logging configuration %s not found. Using basicConfig().", logging_path)
        return

    logging.config.fileConfig(logging_path, disable_existing_loggers=False, defaults={"sys": sys})


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crawl technical communities for interview questions.")
    parser.add_argument(
        "command",
        choices=["crawl", "batch", "health", "invalidate"],
        help="Operation to perform",
    )
    parser.add_argument("--config", default="config/settings.yaml", help="Path to YAML settings file")
    parser.add_argument("--logging-config", default="logging.conf", help="Path to logging fileConfig")
    parser.add_argument("--category", default="前端开发", help="Job/interview category to crawl")
    parser.add_argument("--keyword", action="append", dest="keywords", help="Search keyword (repeatable)")
    parser.add_argument("--site", action="append", dest="sites", help="Target site id (repeatable)")
    parser.add_argument("--no-sites", action="store_true", help="Crawl no live sites (sample data only)")
    parser.add_argument("--max", type=int, default=20, dest="max_questions", help="Maximum questions to return")
    parser.add_argument("--url", action="append", dest="urls", help="URL for the batch command (repeatable)")
    parser.add_argument("--css-selector", help="Restrict batch extraction to this CSS selector")
    parser.add_argument("--pattern", default="interview:*", help="Key pattern for the invalidate command")
    parser.add_argument("--headless", choices=["true", "false"], help="Override crawler.headless")
    parser.add_argument("--cache-backend", choices=["memory", "redis"], help="Override cache.backend")
    return parser


def apply_overrides(settings: dict, args: argparse.Namespace) -> dict:
    crawler_cfg = settings.setdefault("crawler", {})
    cache_cfg = settings.setdefault("cache", {})

    if args.headless is not None:
        crawler_cfg["headless"] = args.headless == "true"
    if args.cache_backend is not None:
        cache_cfg["backend"] = args.cache_backend

    return settings


def resolve_settings(args: argparse.Namespace, environ: Mapping[str, str] | None = None) -> Settings:
    """Settings file, then environment, then command-line flags; later layers win."""
    config_path = Path(args.config)
    raw = read_settings(config_path) if config_path.exists() else {}
    return build_settings(apply_overrides(apply_environment(raw, environ), args))


def create_components(settings: Settings) -> tuple[BrowserSessionManager, ResultCache, CrawlOrchestrator]:
    session = BrowserSessionManager(settings.crawler)
    cache = ResultCache(create_cache_store(settings.cache), ttl_seconds=settings.cache.ttl_seconds)
    orchestrator = CrawlOrchestrator(
        session=session,
        cache=cache,
        registry=SiteRegistry.from_settings(settings.sites),
        settings=settings.crawler,
        category_keywords=settings.category_keywords,
    )
    return session, cache, orchestrator


def build_request(args: argparse.Namespace) -> CrawlRequest:
    target_sites = [] if args.no_sites else args.sites
    return CrawlRequest(
        category=args.category,
        keywords=args.keywords,
        target_sites=target_sites,
        max_questions=args.max_questions,
    )


def emit(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = build_argument_parser()
    args = parser.parse_args(argv)

    settings = resolve_settings(args)

    configure_logging(Path(args.logging_config))

    if args.command == "batch" and not args.urls:
        parser.error("batch requires at least one --url")

    async def orchestrate() -> int:
        if args.command == "batch":
            crawler = BatchCrawler(settings.crawler)
            results = await crawler.crawl_batch(
                args.urls, category=args.category, css_selector=args.css_selector
            )
            emit([result.model_dump(mode="json", by_alias=True, exclude_none=True) for result in results])
            return 0 if any(result.success for result in results) else 1

        session, cache, orchestrator = create_components(settings)
        try:
            if args.command == "crawl":
                result = await orchestrator.crawl_questions(build_request(args))
                emit(result.to_response())
                return 0 if result.success else 1

            if args.command == "health":
                status = await session.health_status()
                emit(status)
                return 0 if status["status"] == "healthy" else 1

            removed = await cache.invalidate(args.pattern)
            LOGGER.info("Removed %d cached result(s) matching %s", removed, args.pattern)
            emit({"removed": removed, "pattern": args.pattern})
            return 0
        finally:
            await session.shutdown()
            await cache.close()

    return asyncio.run(orchestrate())


if __name__ == "__main__":
    raise SystemExit(main())

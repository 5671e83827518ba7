from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, Awaitable, Optional, Sequence, TypeVar

from blog_archive_scraper.config import Config, load_config
from blog_archive_scraper.errors import ScraperError
from blog_archive_scraper.pipeline import IngestionOrchestrator
from blog_archive_scraper.storage import ArticleStore


logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blog-archive-scraper",
        description="Scrape the oldest articles of a JavaScript-rendered blog into a local article store.",
    )
    parser.add_argument("--config", default=None, help="YAML config file (default: $BLOG_SCRAPER_CONFIG or built-ins)")
    parser.add_argument("--log-level", default=None, help="Override logging level (DEBUG, INFO, ...)")

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Ingest the oldest articles from the listing page")
    run.add_argument("--limit", type=int, default=None, help="Number of articles to ingest")
    run.add_argument("--listing-url", default=None, help="Override the listing page URL")

    one = sub.add_parser("scrape-url", help="Ingest a single article URL")
    one.add_argument("url")

    sub.add_parser("stats", help="Show article store statistics")
    return parser


def configure_logging(cfg: Config, level: Optional[str] = None) -> None:
    logging.basicConfig(level=(level or cfg.log_level).upper(), format=cfg.log_format)


async def _cancel_on_sigterm(coro: Awaitable[T]) -> T:
    """Await ``coro``; SIGTERM cancels it so the browser session gets closed."""

    task = asyncio.ensure_future(coro)
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # not supported on this platform / thread
    try:
        return await task
    finally:
        try:
            loop.remove_signal_handler(signal.SIGTERM)
        except (NotImplementedError, RuntimeError):
            pass


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides: dict[str, Any] = {}
    if getattr(args, "limit", None) is not None:
        overrides.setdefault("crawl", {})["article_limit"] = args.limit
    if getattr(args, "listing_url", None):
        overrides.setdefault("source", {})["listing_url"] = args.listing_url

    try:
        cfg = load_config(args.config, overrides=overrides)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    configure_logging(cfg, args.log_level)

    try:
        store = ArticleStore(cfg.output_file)
    except ScraperError as exc:
        logger.error("%s", exc)
        return 2
    orchestrator = IngestionOrchestrator(cfg, store)

    try:
        if args.command == "run":
            result = asyncio.run(_cancel_on_sigterm(orchestrator.run_ingestion()))
            _print_json(result.to_dict())
            return 1 if result.failed else 0

        if args.command == "scrape-url":
            article = asyncio.run(_cancel_on_sigterm(orchestrator.extract_single(args.url)))
            if article is None:
                logger.error("Could not extract article content from %s", args.url)
                return 1
            _print_json(article.summary())
            return 0

        if args.command == "stats":
            _print_json(orchestrator.stats())
            return 0
    except ScraperError as exc:
        logger.error("%s", exc)
        return 1
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Interrupted")
        return 130

    return 2


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence
from urllib.parse import urlparse

from blog_archive_scraper.config import Config
from blog_archive_scraper.discover import extract_article_links
from blog_archive_scraper.errors import (
    DuplicateUrlError,
    NavigationError,
    PersistenceError,
    RobotsDisallowedError,
    SessionStartError,
)
from blog_archive_scraper.extract import ArticleExtractor
from blog_archive_scraper.pagination import resolve_last_page
from blog_archive_scraper.render import RenderedPage, RenderSession
from blog_archive_scraper.robots import RobotsChecker
from blog_archive_scraper.storage import ArticleStore
from blog_archive_scraper.types import Article, ArticleCandidate, ArticleError, RunResult, RunState


logger = logging.getLogger(__name__)


SessionFactory = Callable[[], RenderSession]
Sleep = Callable[[float], Awaitable[None]]


def select_links(links: Sequence[str], limit: int, order: str = "forward") -> list[str]:
    """Pick which discovered links to ingest.

    ``forward`` takes the first ``limit`` in page order, which are the oldest
    posts when the last listing page runs oldest-first. ``reverse`` takes the
    last ``limit`` and walks them backwards, for sites that list newest-first.
    """

    if limit <= 0:
        return []
    if order == "reverse":
        return list(reversed(links))[:limit]
    return list(links)[:limit]


def is_valid_article_url(url: str) -> bool:
    try:
        p = urlparse(url or "")
    except ValueError:
        return False
    return p.scheme in ("http", "https") and bool(p.netloc)


class IngestionOrchestrator:
    """Runs listing -> last page -> links -> articles -> store, one URL at a time.

    Each run gets its own render session, opened at the start and closed on
    every exit path. Only session start-up and loading the listing page can
    fail a run; everything per-article is recorded and skipped.
    """

    def __init__(
        self,
        cfg: Config,
        store: ArticleStore,
        *,
        session_factory: Optional[SessionFactory] = None,
        extractor: Optional[ArticleExtractor] = None,
        robots: Optional[RobotsChecker] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.cfg = cfg
        self.store = store
        self._session_factory = session_factory or (lambda: RenderSession.from_config(cfg))
        self.extractor = extractor or ArticleExtractor.from_config(cfg)
        self.robots = robots
        self._sleep = sleep

    def _enter(self, result: RunResult, state: RunState) -> None:
        logger.debug("Ingestion state %s -> %s", result.state.value, state.value)
        result.state = state

    async def _check_robots(self, url: str) -> None:
        if not self.cfg.robots_enforce:
            return
        if self.robots is None:
            self.robots = RobotsChecker(self.cfg.user_agent, self.cfg.robots_timeout_seconds)
        if not await self.robots.is_allowed(url):
            raise RobotsDisallowedError(url)

    async def _load_listing(self, session: RenderSession) -> RenderedPage:
        listing_url = self.cfg.listing_url
        logger.info("Loading listing page %s", listing_url)
        page = await session.load(listing_url, self.cfg.timeout_ms, settle_seconds=self.cfg.listing_settle_seconds)

        if not self.cfg.follow_last_page:
            return page

        last_url = resolve_last_page(page, listing_url)
        if not last_url:
            return page
        try:
            return await session.load(last_url, self.cfg.timeout_ms, settle_seconds=self.cfg.listing_settle_seconds)
        except NavigationError as exc:
            logger.warning("Could not load last listing page, staying on %s: %s", page.url, exc)
            return page

    async def _ingest_one(self, session: RenderSession, url: str, result: RunResult) -> None:
        candidate = await self.extractor.extract(session, url)
        if candidate is None:
            result.miss_count += 1
            result.missed_urls.append(url)
            return

        result.scraped_count += 1
        try:
            article, created = self._persist(candidate)
        except PersistenceError as exc:
            logger.warning("Could not save %r (%s): %s", candidate.title, candidate.url, exc)
            result.error_count += 1
            result.errors.append(ArticleError(url=candidate.url, title=candidate.title, error=str(exc), kind="persistence"))
            return
        except Exception as exc:
            logger.exception("Unexpected error saving %s", candidate.url)
            result.error_count += 1
            result.errors.append(ArticleError(url=candidate.url, title=candidate.title, error=str(exc), kind="unexpected"))
            return

        result.articles.append(article)
        if created:
            result.saved_count += 1
            logger.info("Saved article: %s", article.title)
        else:
            result.duplicate_count += 1
            logger.info("Article already exists: %s", article.url)

    def _persist(self, candidate: ArticleCandidate) -> tuple[Article, bool]:
        existing = self.store.find_by_url(candidate.url)
        if existing is not None:
            return existing, False
        try:
            return self.store.create(candidate), True
        except DuplicateUrlError:
            # Lost a race with a concurrent run; the row is there now.
            existing = self.store.find_by_url(candidate.url)
            if existing is None:
                raise PersistenceError("duplicate reported but article not found", url=candidate.url, title=candidate.title)
            return existing, False

    async def run_ingestion(self) -> RunResult:
        result = RunResult()
        logger.info("Starting ingestion of oldest articles from %s", self.cfg.listing_url)

        try:
            await self._check_robots(self.cfg.listing_url)
        except RobotsDisallowedError as exc:
            self._enter(result, RunState.FAILED)
            result.failure = str(exc)
            logger.error("Ingestion aborted: %s", exc)
            return result

        session = self._session_factory()
        try:
            self._enter(result, RunState.RESOLVING)
            await session.open()
            listing = await self._load_listing(session)

            self._enter(result, RunState.EXTRACTING)
            links = extract_article_links(
                listing,
                listing.url,
                article_path_fragment=self.cfg.article_path_fragment,
                exclude=[self.cfg.listing_url],
            )
            selected = select_links(links, self.cfg.article_limit, self.cfg.selection_order)
            logger.info("Scraping %d of %d article links", len(selected), len(links))

            self._enter(result, RunState.PER_ARTICLE)
            for i, url in enumerate(selected):
                if i > 0 and self.cfg.politeness_delay_seconds > 0:
                    await self._sleep(self.cfg.politeness_delay_seconds)
                await self._ingest_one(session, url, result)
        except (SessionStartError, NavigationError) as exc:
            self._enter(result, RunState.FAILED)
            result.failure = str(exc)
            logger.error("Ingestion failed: %s", exc)
        except Exception as exc:
            self._enter(result, RunState.FAILED)
            result.failure = f"unexpected error: {exc}"
            logger.exception("Ingestion failed unexpectedly")
        finally:
            if not result.failed:
                self._enter(result, RunState.CLOSING)
            await session.close()

        if not result.failed:
            self._enter(result, RunState.DONE)
        logger.info(
            "Ingestion finished: %d scraped, %d saved, %d already existed, %d errors, %d misses",
            result.scraped_count,
            result.saved_count,
            result.duplicate_count,
            result.error_count,
            result.miss_count,
        )
        return result

    async def extract_single(self, url: str) -> Optional[Article]:
        """Ingest one URL without pagination.

        Returns the stored article (new or pre-existing), or ``None`` when the
        URL is invalid or nothing usable could be extracted. A browser that
        fails to start raises SessionStartError.
        """

        if not is_valid_article_url(url):
            logger.warning("Refusing to scrape invalid URL: %r", url)
            return None

        existing = self.store.find_by_url(url)
        if existing is not None:
            logger.info("Article already exists: %s", url)
            return existing

        session = self._session_factory()
        try:
            await session.open()
            candidate = await self.extractor.extract(session, url)
        finally:
            await session.close()

        if candidate is None:
            return None
        article, _created = self._persist(candidate)
        return article

    def stats(self) -> dict[str, int]:
        return {
            "totalArticles": self.store.count(),
            "unenhancedCount": self.store.count_unenhanced(),
        }

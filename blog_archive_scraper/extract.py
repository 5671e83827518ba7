from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from dateutil import parser as dateparser

from blog_archive_scraper.cascade import Strategy, first_match, select_attr, select_inner_html, select_text
from blog_archive_scraper.clean import clean_html
from blog_archive_scraper.config import DEFAULT_TAG_VOCABULARY, Config
from blog_archive_scraper.errors import ExtractionMiss, NavigationError
from blog_archive_scraper.render import RenderedPage, RenderSession
from blog_archive_scraper.tags import classify_tags
from blog_archive_scraper.types import ArticleCandidate


logger = logging.getLogger(__name__)


MIN_CONTENT_CHARS = 100
MAX_TITLE_CHARS = 500


def _page_title(page: RenderedPage) -> Optional[str]:
    return page.title.strip() or None


TITLE_STRATEGIES: list[Strategy[str]] = [
    select_text("h1"),
    select_text(".post-title"),
    select_text(".entry-title"),
    select_text(".article-title"),
    select_attr('meta[property="og:title"]', "content"),
    select_text("title"),
    _page_title,
]

CONTENT_STRATEGIES: list[Strategy[str]] = [
    select_inner_html(".post-content"),
    select_inner_html(".entry-content"),
    select_inner_html(".article-content"),
    select_inner_html(".blog-content"),
    select_inner_html("main article"),
    select_inner_html("article"),
    select_inner_html(".content"),
]

DATE_STRATEGIES: list[Strategy[str]] = [
    select_attr("time[datetime]", "datetime"),
    select_attr('meta[property="article:published_time"]', "content"),
    select_text(".post-date"),
    select_text(".published"),
    select_text(".entry-date"),
    select_text('[class*="date"]'),
]


def parse_date_hint(value: str | None) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = dateparser.parse(value, fuzzy=True)
    except (ValueError, OverflowError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def extract_candidate(
    page: RenderedPage,
    *,
    min_content_chars: int = MIN_CONTENT_CHARS,
    max_title_chars: int = MAX_TITLE_CHARS,
    vocabulary: Iterable[str] = DEFAULT_TAG_VOCABULARY,
) -> ArticleCandidate:
    """Turn a rendered article page into a candidate or raise ExtractionMiss."""

    title = first_match(TITLE_STRATEGIES, page)
    raw_content = first_match(CONTENT_STRATEGIES, page)
    date_hint = first_match(DATE_STRATEGIES, page)

    if not title:
        raise ExtractionMiss(page.url, "no title found")
    if not raw_content:
        raise ExtractionMiss(page.url, "no content container found")

    content = clean_html(raw_content)
    if len(content) < min_content_chars:
        raise ExtractionMiss(page.url, f"content too short ({len(content)} < {min_content_chars} chars)")

    title = " ".join(title.split())
    return ArticleCandidate(
        title=title[:max_title_chars],
        content=content,
        url=page.url,
        tags=classify_tags(title, content, vocabulary),
        published_at=parse_date_hint(date_hint),
    )


class ArticleExtractor:
    def __init__(
        self,
        *,
        timeout_ms: int = 30000,
        settle_seconds: float = 0.0,
        min_content_chars: int = MIN_CONTENT_CHARS,
        max_title_chars: int = MAX_TITLE_CHARS,
        vocabulary: Iterable[str] = DEFAULT_TAG_VOCABULARY,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.settle_seconds = settle_seconds
        self.min_content_chars = min_content_chars
        self.max_title_chars = max_title_chars
        self.vocabulary = tuple(vocabulary)

    @classmethod
    def from_config(cls, cfg: Config) -> "ArticleExtractor":
        return cls(
            timeout_ms=cfg.timeout_ms,
            settle_seconds=cfg.article_settle_seconds,
            min_content_chars=cfg.min_content_chars,
            max_title_chars=cfg.max_title_chars,
            vocabulary=cfg.tag_vocabulary,
        )

    async def extract(self, session: RenderSession, url: str) -> Optional[ArticleCandidate]:
        """Best-effort extraction of one article; ``None`` on any failure."""

        try:
            page = await session.load(url, self.timeout_ms, settle_seconds=self.settle_seconds)
            # Key on the requested URL, not wherever the site redirected us.
            page.url = url
            return extract_candidate(
                page,
                min_content_chars=self.min_content_chars,
                max_title_chars=self.max_title_chars,
                vocabulary=self.vocabulary,
            )
        except NavigationError as exc:
            logger.warning("Could not load article %s: %s", url, exc)
        except ExtractionMiss as exc:
            logger.warning("No article extracted from %s: %s", url, exc.reason)
        except Exception:
            logger.exception("Unexpected error extracting %s", url)
        return None

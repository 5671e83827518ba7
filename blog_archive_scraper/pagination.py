from __future__ import annotations

import logging
import re
from typing import Optional, Sequence
from urllib.parse import parse_qs, urlparse

from blog_archive_scraper.cascade import Strategy, first_match
from blog_archive_scraper.discover import PAGE_PATH_RE, resolve_url, same_page
from blog_archive_scraper.render import RenderedPage


logger = logging.getLogger(__name__)


_EXPLICIT_LAST_SELECTORS = (
    'a[aria-label="Last page"]',
    'a[rel="last"]',
    'a[aria-label*="last" i]',
    'a[title*="last" i]',
    "a.last",
    "a.page-numbers.last",
    ".pagination .last a",
)

_PAGINATION_CONTAINERS = (
    ".pagination",
    "nav.pagination",
    ".nav-links",
    ".page-numbers",
    "ul.page-numbers",
)

_STEP_LINK_RE = re.compile(r"\b(next|prev|previous|older|newer)\b|[«»‹›←→]", re.IGNORECASE)
_PAGE_NUMBER_RE = re.compile(r"^\s*(\d{1,5})\s*$")
_LAST_LABEL_RE = re.compile(r"\blast\b", re.IGNORECASE)
_LAST_TEXTS = ("last", "last page")
_ARROWS = "«»‹›←→ \u00a0"


def _resolved(base_url: str, href: object) -> Optional[str]:
    return resolve_url(base_url, str(href or ""))


def _explicit_last(base_url: str) -> Strategy[str]:
    def strategy(page: RenderedPage) -> Optional[str]:
        for sel in _EXPLICIT_LAST_SELECTORS:
            for a in page.soup.select(sel):
                url = _resolved(base_url, a.get("href"))
                if url:
                    return url
        return None

    strategy.__name__ = "explicit_last"
    return strategy


def _explicit_last_text(base_url: str) -> Strategy[str]:
    def strategy(page: RenderedPage) -> Optional[str]:
        for a in page.soup.find_all("a", href=True):
            text = a.get_text(" ", strip=True).strip(_ARROWS).lower()
            if text not in _LAST_TEXTS:
                continue
            url = _resolved(base_url, a.get("href"))
            if url:
                return url
        return None

    strategy.__name__ = "explicit_last_text"
    return strategy


def _last_in_pagination(base_url: str) -> Strategy[str]:
    def strategy(page: RenderedPage) -> Optional[str]:
        for sel in _PAGINATION_CONTAINERS:
            anchors = []
            for container in page.soup.select(sel):
                if container.name == "a":
                    anchors.append(container)
                else:
                    anchors.extend(container.find_all("a", href=True))
            for a in reversed(anchors):
                text = a.get_text(" ", strip=True)
                label = f"{text} {a.get('aria-label') or ''} {' '.join(a.get('class') or [])}"
                # "Next »" is usually the trailing item and points one page ahead.
                if _STEP_LINK_RE.search(label) and not _LAST_LABEL_RE.search(label):
                    continue
                url = _resolved(base_url, a.get("href"))
                if url:
                    return url
        return None

    strategy.__name__ = "last_in_pagination"
    return strategy


def _max_numbered_text(base_url: str) -> Strategy[str]:
    def strategy(page: RenderedPage) -> Optional[str]:
        best: tuple[int, str] | None = None
        for a in page.soup.find_all("a", href=True):
            m = _PAGE_NUMBER_RE.match(a.get_text(" ", strip=True))
            if not m:
                continue
            url = _resolved(base_url, a.get("href"))
            if not url:
                continue
            n = int(m.group(1))
            if best is None or n > best[0]:
                best = (n, url)
        return best[1] if best else None

    strategy.__name__ = "max_numbered_text"
    return strategy


def page_number_from_url(url: str) -> Optional[int]:
    p = urlparse(url)
    m = PAGE_PATH_RE.search(p.path)
    if m:
        return int(m.group(1))
    for key in ("page", "paged", "p"):
        values = parse_qs(p.query).get(key)
        if values and values[0].isdigit():
            return int(values[0])
    return None


def _max_numbered_href(base_url: str) -> Strategy[str]:
    def strategy(page: RenderedPage) -> Optional[str]:
        best: tuple[int, str] | None = None
        for a in page.soup.find_all("a", href=True):
            url = _resolved(base_url, a.get("href"))
            if not url:
                continue
            n = page_number_from_url(url)
            if n is not None and (best is None or n > best[0]):
                best = (n, url)
        return best[1] if best else None

    strategy.__name__ = "max_numbered_href"
    return strategy


def pagination_strategies(base_url: str) -> list[Strategy[str]]:
    return [
        _explicit_last(base_url),
        _explicit_last_text(base_url),
        _last_in_pagination(base_url),
        _max_numbered_text(base_url),
        _max_numbered_href(base_url),
    ]


def resolve_last_page(
    page: RenderedPage,
    base_url: str,
    strategies: Sequence[Strategy[str]] | None = None,
) -> Optional[str]:
    """URL of the listing page holding the oldest items.

    Returns ``None`` when no heuristic finds one or when it points back at the
    current page; the caller then treats the current page as the last one.
    """

    if strategies is None:
        strategies = pagination_strategies(base_url)
    url = first_match(strategies, page)
    if not url:
        logger.info("No pagination found on %s; using current page", page.url)
        return None
    if same_page(url, page.url):
        return None
    logger.info("Resolved last listing page: %s", url)
    return url

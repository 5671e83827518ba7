from __future__ import annotations

import logging
import re
from typing import Callable, Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from blog_archive_scraper.cascade import Strategy, first_match, select_hrefs
from blog_archive_scraper.render import RenderedPage


logger = logging.getLogger(__name__)


_DENY_PREFIXES = ("mailto:", "tel:", "javascript:", "data:")

_TRACKING_PARAMS_PREFIXES = ("utm_",)

_TRACKING_PARAMS = {
    "fbclid",
    "gclid",
    "msclkid",
    "mc_cid",
    "mc_eid",
    "ref",
}

_HUB_PATH_SUBSTRINGS = (
    "/tag/",
    "/tags/",
    "/category/",
    "/categories/",
    "/author/",
    "/authors/",
    "/search",
    "/feed",
)

PAGE_PATH_RE = re.compile(r"/page/(\d+)/?$", re.IGNORECASE)


def resolve_url(base_url: str, href: str) -> str | None:
    """Absolute http(s) URL for ``href`` relative to ``base_url``, or ``None``."""

    if not href:
        return None
    href = href.strip()
    if not href or href.startswith("#"):
        return None
    if any(href.lower().startswith(x) for x in _DENY_PREFIXES):
        return None
    try:
        url = urljoin(base_url, href)
    except ValueError:
        return None
    if urlparse(url).scheme not in ("http", "https"):
        return None
    return url


def strip_fragment_and_tracking_params(url: str) -> str:
    """Remove URL fragments and common tracking params to improve de-duplication."""

    try:
        p = urlparse(url)
    except ValueError:
        return url
    if not p.scheme or not p.netloc:
        return url

    keep_params: list[tuple[str, str]] = []
    for k, v in parse_qsl(p.query, keep_blank_values=False):
        kl = k.lower()
        if any(kl.startswith(prefix) for prefix in _TRACKING_PARAMS_PREFIXES):
            continue
        if kl in _TRACKING_PARAMS:
            continue
        keep_params.append((k, v))

    query = urlencode(keep_params, doseq=True)
    return urlunparse(p._replace(query=query, fragment=""))


def _host(url: str) -> str:
    host = urlparse(url).netloc.lower()
    return host.removeprefix("www.")


def same_site(a: str, b: str) -> bool:
    return _host(a) == _host(b)


def same_page(a: str, b: str) -> bool:
    return strip_fragment_and_tracking_params(a).rstrip("/") == strip_fragment_and_tracking_params(b).rstrip("/")


def _is_hub_or_pagination(url: str) -> bool:
    path = urlparse(url).path.lower()
    if PAGE_PATH_RE.search(path):
        return True
    return any(s in path for s in _HUB_PATH_SUBSTRINGS)


def normalize_links(
    base_url: str,
    hrefs: Sequence[str],
    *,
    same_site_only: bool = True,
    exclude: Sequence[str] = (),
) -> list[str]:
    """Resolve, clean and de-duplicate hrefs, keeping first-seen order.

    Links to ``base_url`` itself or to any URL in ``exclude`` are dropped.
    """

    out: list[str] = []
    seen: set[str] = set()
    for href in hrefs:
        url = resolve_url(base_url, href)
        if not url:
            continue
        url = strip_fragment_and_tracking_params(url)
        if same_site_only and not same_site(base_url, url):
            continue
        if same_page(base_url, url) or any(same_page(x, url) for x in exclude):
            continue
        if _is_hub_or_pagination(url):
            continue
        p = urlparse(url)
        key = f"{_host(url)}{p.path.rstrip('/')}?{p.query}".lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(url)
    return out


def _links(
    selector: str,
    base_url: str,
    predicate: Callable[[str], bool] | None = None,
    exclude: Sequence[str] = (),
) -> Strategy[list[str]]:
    raw = select_hrefs(selector, predicate)

    def strategy(page: RenderedPage) -> Optional[list[str]]:
        return normalize_links(base_url, raw(page) or [], exclude=exclude)

    strategy.__name__ = raw.__name__
    return strategy


def pagination_root(url: str) -> str:
    """``url`` with a trailing '/page/N/' segment removed."""

    p = urlparse(url)
    path = PAGE_PATH_RE.sub("/", p.path)
    return urlunparse(p._replace(path=path, query="", fragment=""))


def link_strategies(
    base_url: str,
    article_path_fragment: str = "/blogs/",
    exclude: Sequence[str] = (),
) -> list[Strategy[list[str]]]:
    marker = "/" + article_path_fragment.strip("/")
    # The first page of a paginated listing is never an article.
    exclude = [*exclude, pagination_root(base_url)]

    def is_article_href(href: str) -> bool:
        return marker in href

    return [
        _links("article a[href]", base_url, is_article_href, exclude=exclude),
        _links(".blog-post a[href]", base_url, is_article_href, exclude=exclude),
        _links(".post-title a[href]", base_url, exclude=exclude),
        _links("h2 a[href]", base_url, is_article_href, exclude=exclude),
        _links("h3 a[href]", base_url, is_article_href, exclude=exclude),
        _links(".entry-title a[href]", base_url, exclude=exclude),
        _links(f'a[href*="{marker}/"]', base_url, exclude=exclude),
    ]


def extract_article_links(
    page: RenderedPage,
    base_url: str,
    *,
    article_path_fragment: str = "/blogs/",
    exclude: Sequence[str] = (),
    strategies: Sequence[Strategy[list[str]]] | None = None,
) -> list[str]:
    """Candidate article URLs on a rendered listing page.

    The first strategy that finds anything wins outright; results from
    different strategies are never merged, so navigation chrome does not leak
    into content links.
    """

    if strategies is None:
        strategies = link_strategies(base_url, article_path_fragment, exclude)
    links = first_match(strategies, page) or []
    logger.info("Found %d article links on %s", len(links), page.url)
    return list(links)

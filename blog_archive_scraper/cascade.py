"""Ordered lookup strategies over a rendered page.

A strategy is any callable ``RenderedPage -> Optional[T]``. ``first_match``
runs them in order and stops at the first one that yields something.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, TypeVar

from blog_archive_scraper.render import RenderedPage


logger = logging.getLogger(__name__)

T = TypeVar("T")

Strategy = Callable[[RenderedPage], Optional[T]]


def _is_empty(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def first_match(strategies: Sequence[Strategy[T]], page: RenderedPage) -> Optional[T]:
    for strategy in strategies:
        try:
            value = strategy(page)
        except Exception as exc:
            logger.debug("Strategy %s failed on %s: %s", _name(strategy), page.url, exc)
            continue
        if not _is_empty(value):
            return value
    return None


def _name(strategy: Callable[..., object]) -> str:
    return getattr(strategy, "__name__", None) or repr(strategy)


def select_text(selector: str) -> Strategy[str]:
    """First element matching ``selector`` with non-blank text."""

    def strategy(page: RenderedPage) -> Optional[str]:
        for el in page.soup.select(selector):
            text = el.get_text(" ", strip=True)
            if text:
                return text
        return None

    strategy.__name__ = f"text[{selector}]"
    return strategy


def select_attr(selector: str, attr: str) -> Strategy[str]:
    def strategy(page: RenderedPage) -> Optional[str]:
        for el in page.soup.select(selector):
            value = str(el.get(attr) or "").strip()
            if value:
                return value
        return None

    strategy.__name__ = f"attr[{selector}@{attr}]"
    return strategy


def select_inner_html(selector: str) -> Strategy[str]:
    def strategy(page: RenderedPage) -> Optional[str]:
        for el in page.soup.select(selector):
            if el.get_text(strip=True):
                return el.decode_contents()
        return None

    strategy.__name__ = f"html[{selector}]"
    return strategy


def select_hrefs(selector: str, predicate: Callable[[str], bool] | None = None) -> Strategy[list[str]]:
    """Raw ``href`` values of every element matching ``selector``, in document order."""

    def strategy(page: RenderedPage) -> Optional[list[str]]:
        out: list[str] = []
        for el in page.soup.select(selector):
            href = str(el.get("href") or "").strip()
            if not href:
                continue
            if predicate is not None and not predicate(href):
                continue
            out.append(href)
        return out or None

    strategy.__name__ = f"hrefs[{selector}]"
    return strategy

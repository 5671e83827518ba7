from __future__ import annotations

import asyncio

import pytest

from blog_archive_scraper.config import load_config
from blog_archive_scraper.errors import NavigationError, SessionStartError
from blog_archive_scraper.render import RenderedPage
from blog_archive_scraper.storage import ArticleStore


BASE = "https://blog.example.com"
LISTING_URL = f"{BASE}/blogs/"

ARTICLE_BODY = (
    "Chatbots have changed how teams handle customer service. "
    "This post walks through the automation platform we built, "
    "what broke in production and how we fixed it over three releases."
)


def article_html(title: str, body: str = ARTICLE_BODY, *, date: str = "2021-03-04T10:00:00Z") -> str:
    return f"""
    <html>
      <head><title>{title} | Example Blog</title></head>
      <body>
        <nav><a href="/">Home</a> <a href="/blogs/">Blog</a></nav>
        <h1>{title}</h1>
        <time datetime="{date}">March 4, 2021</time>
        <div class="entry-content">
          <p>{body}</p>
          <script>trackPageView();</script>
          <div class="ads">Buy our premium plan now</div>
          <p>Thanks for reading.</p>
        </div>
        <footer>Copyright Example</footer>
      </body>
    </html>
    """


def listing_html(slugs: list[str], *, last_page: int | None = None) -> str:
    items = "\n".join(
        f'<article class="post"><h2><a href="/blogs/{s}/">Post {s}</a></h2></article>' for s in slugs
    )
    pager = ""
    if last_page is not None:
        numbers = "".join(f'<a href="/blogs/page/{n}/">{n}</a>' for n in range(2, last_page + 1))
        pager = f'<nav class="pagination">{numbers}<a class="next" href="/blogs/page/2/">Next &raquo;</a></nav>'
    return f"<html><body><header><a href='/about/'>About</a></header>{items}{pager}</body></html>"


def article_url(slug: str) -> str:
    return f"{BASE}/blogs/{slug}/"


class FakeRenderSession:
    """Serves canned HTML instead of driving a browser."""

    def __init__(self, pages: dict[str, str], *, fail_open: bool = False, cancel_on: str | None = None) -> None:
        self.pages = pages
        self.fail_open = fail_open
        self.cancel_on = cancel_on
        self.loaded: list[str] = []
        self.open_calls = 0
        self.close_calls = 0
        self.is_open = False

    async def open(self) -> "FakeRenderSession":
        self.open_calls += 1
        if self.fail_open:
            raise SessionStartError("could not start browser: executable missing")
        self.is_open = True
        return self

    async def load(self, url: str, timeout_ms: int | None = None, settle_seconds: float = 0.0) -> RenderedPage:
        if not self.is_open:
            raise NavigationError(url, "session is not open")
        self.loaded.append(url)
        if url == self.cancel_on:
            raise asyncio.CancelledError()
        if url not in self.pages:
            raise NavigationError(url, "HTTP 404")
        return RenderedPage(url=url, html=self.pages[url], title="")

    async def close(self) -> None:
        self.close_calls += 1
        self.is_open = False


class SessionFactory:
    def __init__(self, session: FakeRenderSession) -> None:
        self.session = session
        self.calls = 0

    def __call__(self) -> FakeRenderSession:
        self.calls += 1
        return self.session


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("BLOG_SCRAPER_CONFIG", "BLOG_SCRAPER_LISTING_URL", "BLOG_SCRAPER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cfg():
    return load_config(
        overrides={
            "source": {"listing_url": LISTING_URL},
            "render": {"listing_settle_seconds": 0, "article_settle_seconds": 0},
            "crawl": {"article_limit": 5, "politeness_delay_seconds": 0.5},
            "storage": {"output_file": None},
        }
    )


@pytest.fixture
def store():
    return ArticleStore(None)


@pytest.fixture
def sleep():
    return RecordingSleep()

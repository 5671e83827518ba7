from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from blog_archive_scraper.config import DEFAULT_USER_AGENT, Config
from blog_archive_scraper.errors import NavigationError, SessionStartError


logger = logging.getLogger(__name__)


_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


@dataclass
class RenderedPage:
    """Snapshot of a page's DOM after client-side rendering settled."""

    url: str
    html: str
    title: str = ""
    soup: BeautifulSoup = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.soup = BeautifulSoup(self.html or "", "lxml")


class RenderSession:
    """One headless Chromium browser plus a single browsing context.

    ``open`` is idempotent and ``close`` may be called any number of times.
    Prefer ``async with RenderSession(...)`` so the browser is released on every
    exit path, cancellation included.
    """

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        headless: bool = True,
        viewport: Optional[dict[str, int]] = None,
        timeout_ms: int = 30000,
    ) -> None:
        self._user_agent = user_agent
        self._headless = headless
        self._viewport = viewport or {"width": 1920, "height": 1080}
        self._timeout_ms = timeout_ms
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None

    @classmethod
    def from_config(cls, cfg: Config) -> "RenderSession":
        return cls(
            user_agent=cfg.user_agent,
            headless=cfg.headless,
            viewport=cfg.viewport,
            timeout_ms=cfg.timeout_ms,
        )

    @property
    def is_open(self) -> bool:
        return self._context is not None

    async def open(self) -> Any:
        if self._context is not None:
            return self._context

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self._headless, args=_LAUNCH_ARGS)
            self._context = await self._browser.new_context(
                user_agent=self._user_agent,
                viewport=self._viewport,
                locale="en-US",
                extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
            )
        except asyncio.CancelledError:
            await self.close()
            raise
        except Exception as exc:
            await self.close()
            raise SessionStartError(f"could not start browser: {exc}") from exc

        logger.debug("Browser session opened (headless=%s)", self._headless)
        return self._context

    async def load(self, url: str, timeout_ms: Optional[int] = None, settle_seconds: float = 0.0) -> RenderedPage:
        """Navigate to ``url``, wait for the network to go idle and snapshot the DOM."""

        context = await self.open()
        timeout = int(timeout_ms if timeout_ms is not None else self._timeout_ms)

        page = None
        try:
            page = await context.new_page()
            response = await page.goto(url, wait_until="networkidle", timeout=timeout)
            if response is not None and response.status >= 400:
                raise NavigationError(url, f"HTTP {response.status}")
            if settle_seconds > 0:
                # Late client-side rendering after the network went quiet.
                await asyncio.sleep(settle_seconds)
            html = await page.content()
            title = await page.title()
        except PlaywrightTimeoutError as exc:
            raise NavigationError(url, f"timed out after {timeout} ms") from exc
        except PlaywrightError as exc:
            raise NavigationError(url, str(exc)) from exc
        finally:
            if page is not None:
                try:
                    await page.close()
                except PlaywrightError as exc:
                    logger.debug("Ignoring error while closing tab for %s: %s", url, exc)

        return RenderedPage(url=page.url or url, html=html, title=title or "")

    async def close(self) -> None:
        context, browser, pw = self._context, self._browser, self._playwright
        self._context = self._browser = self._playwright = None
        if context is None and browser is None and pw is None:
            return
        # Shielded so an outer cancellation cannot leave Chromium running.
        await asyncio.shield(self._shutdown(context, browser, pw))

    @staticmethod
    async def _shutdown(context: Any, browser: Any, pw: Any) -> None:
        for name, closer in (
            ("context", getattr(context, "close", None)),
            ("browser", getattr(browser, "close", None)),
            ("playwright", getattr(pw, "stop", None)),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except Exception as exc:
                logger.warning("Error while closing %s: %s", name, exc)
        logger.debug("Browser session closed")

    async def __aenter__(self) -> "RenderSession":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

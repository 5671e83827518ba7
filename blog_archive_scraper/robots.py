from __future__ import annotations

import asyncio
import logging
import urllib.robotparser
from typing import Optional
from urllib.parse import urlparse

import aiohttp

from blog_archive_scraper.config import DEFAULT_USER_AGENT


logger = logging.getLogger(__name__)


class RobotsChecker:
    """robots.txt lookups, fetched once per host and cached.

    Missing, unreachable or erroring robots.txt files allow crawling.
    """

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, timeout_seconds: float = 5.0) -> None:
        self.user_agent = user_agent
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._cache: dict[str, Optional[urllib.robotparser.RobotFileParser]] = {}

    async def _fetch(self, robots_url: str) -> Optional[str]:
        headers = {"User-Agent": self.user_agent, "Accept": "text/plain,*/*;q=0.8"}
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(robots_url, headers=headers) as r:
                    if r.status >= 400:
                        return None
                    return await r.text(errors="ignore")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Could not fetch %s: %s", robots_url, exc)
            return None

    async def parser_for(self, url: str) -> Optional[urllib.robotparser.RobotFileParser]:
        p = urlparse(url)
        host = p.netloc.lower()
        if not host:
            return None
        if host not in self._cache:
            robots_url = f"{p.scheme or 'https'}://{host}/robots.txt"
            body = await self._fetch(robots_url)
            if body is None:
                self._cache[host] = None
            else:
                rp = urllib.robotparser.RobotFileParser(robots_url)
                rp.parse(body.splitlines())
                self._cache[host] = rp
        return self._cache[host]

    async def is_allowed(self, url: str) -> bool:
        rp = await self.parser_for(url)
        if rp is None:
            return True
        allowed = rp.can_fetch(self.user_agent, url)
        if not allowed:
            logger.warning("robots.txt disallows %s", url)
        return allowed

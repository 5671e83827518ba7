from __future__ import annotations


class ScraperError(Exception):
    """Base class for every error raised by the ingestion pipeline."""


class SessionStartError(ScraperError):
    """The browser automation engine could not be launched."""


class NavigationError(ScraperError):
    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url


class ExtractionMiss(ScraperError):
    """A selector cascade found nothing or the content failed a quality gate."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class DuplicateUrlError(ScraperError):
    def __init__(self, url: str) -> None:
        super().__init__(f"article already exists: {url}")
        self.url = url


class PersistenceError(ScraperError):
    def __init__(self, message: str, *, url: str | None = None, title: str | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.title = title


class RobotsDisallowedError(ScraperError):
    def __init__(self, url: str) -> None:
        super().__init__(f"robots.txt disallows {url}")
        self.url = url

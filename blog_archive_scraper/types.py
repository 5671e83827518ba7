from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


WORDS_PER_MINUTE = 200


def count_words(text: str | None) -> int:
    return len((text or "").split())


def reading_time(word_count: int) -> int:
    """Minutes needed to read ``word_count`` words, rounded up."""

    if word_count <= 0:
        return 0
    return math.ceil(word_count / WORDS_PER_MINUTE)


@dataclass(frozen=True)
class ArticleCandidate:
    title: str
    content: str
    url: str
    tags: list[str] = field(default_factory=list)
    published_at: Optional[datetime] = None


@dataclass(frozen=True)
class Article:
    id: str
    title: str
    content: str
    url: str
    scraped_date: datetime
    word_count: int
    reading_time: int
    tags: list[str] = field(default_factory=list)
    enhanced_content: Optional[str] = None
    is_enhanced: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def summary(self) -> dict[str, Any]:
        # Shape consumed by the request-handling layer.
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "wordCount": self.word_count,
            "readingTime": self.reading_time,
            "tags": list(self.tags),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class ArticleError:
    url: str
    error: str
    kind: str
    title: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "url": self.url, "error": self.error, "kind": self.kind}


class RunState(str, enum.Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    EXTRACTING = "extracting"
    PER_ARTICLE = "per_article"
    CLOSING = "closing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunResult:
    scraped_count: int = 0
    saved_count: int = 0
    duplicate_count: int = 0
    error_count: int = 0
    miss_count: int = 0
    articles: list[Article] = field(default_factory=list)
    errors: list[ArticleError] = field(default_factory=list)
    missed_urls: list[str] = field(default_factory=list)
    state: RunState = RunState.IDLE
    failure: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.state is RunState.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": not self.failed,
            "failure": self.failure,
            "scrapedCount": self.scraped_count,
            "savedCount": self.saved_count,
            "duplicateCount": self.duplicate_count,
            "errorCount": self.error_count,
            "missCount": self.miss_count,
            "articles": [a.summary() for a in self.articles],
            "errors": [e.to_dict() for e in self.errors],
            "missedUrls": list(self.missed_urls),
        }

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from blog_archive_scraper.clean import sanitize_content
from blog_archive_scraper.errors import DuplicateUrlError, PersistenceError
from blog_archive_scraper.types import Article, ArticleCandidate, count_words, reading_time


logger = logging.getLogger(__name__)


COLUMNS = [
    "id",
    "title",
    "content",
    "url",
    "scraped_date",
    "enhanced_content",
    "is_enhanced",
    "word_count",
    "reading_time",
    "tags",
    "created_at",
    "updated_at",
]


def read_existing(path: Path) -> pd.DataFrame | None:
    if not path.exists():
        return None

    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(path)
    # Everything else is CSV; keep empty cells as "" rather than NaN.
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def write_frame(path: Path, df: pd.DataFrame) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".parquet":
        df.to_parquet(path, index=False)
        return
    df.to_csv(path, index=False, encoding="utf-8")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> Optional[datetime]:
    if value is None or (not isinstance(value, str) and pd.isna(value)) or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value) if not pd.isna(value) else False


def _optional_str(value: Any) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(value) or None


def row_to_article(row: dict[str, Any]) -> Article:
    tags = row.get("tags")
    if isinstance(tags, str):
        tags = json.loads(tags) if tags else []
    return Article(
        id=str(row["id"]),
        title=str(row["title"]),
        content=str(row["content"]),
        url=str(row["url"]),
        scraped_date=_parse_ts(row.get("scraped_date")) or _now(),
        word_count=int(row.get("word_count") or 0),
        reading_time=int(row.get("reading_time") or 0),
        tags=list(tags or []),
        enhanced_content=_optional_str(row.get("enhanced_content")),
        is_enhanced=_as_bool(row.get("is_enhanced")),
        created_at=_parse_ts(row.get("created_at")),
        updated_at=_parse_ts(row.get("updated_at")),
    )


def article_to_row(article: Article) -> dict[str, Any]:
    return {
        "id": article.id,
        "title": article.title,
        "content": article.content,
        "url": article.url,
        "scraped_date": article.scraped_date.isoformat(),
        "enhanced_content": article.enhanced_content or "",
        "is_enhanced": "true" if article.is_enhanced else "false",
        "word_count": str(article.word_count),
        "reading_time": str(article.reading_time),
        "tags": json.dumps(sorted(set(article.tags)), ensure_ascii=False),
        "created_at": article.created_at.isoformat() if article.created_at else "",
        "updated_at": article.updated_at.isoformat() if article.updated_at else "",
    }


class ArticleStore:
    """URL-unique article table kept in a DataFrame and mirrored to a file.

    With ``path=None`` the table only lives in memory.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._df = self._load()

    def _load(self) -> pd.DataFrame:
        if self.path is None:
            return pd.DataFrame(columns=COLUMNS, dtype=str)
        try:
            df = read_existing(self.path)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"could not read article store {self.path}: {exc}") from exc
        if df is None:
            return pd.DataFrame(columns=COLUMNS, dtype=str)
        for col in COLUMNS:
            if col not in df.columns:
                df[col] = ""
        df = df[COLUMNS].astype(str)
        return df.drop_duplicates(subset=["url"], keep="first").reset_index(drop=True)

    def _find(self, column: str, value: str) -> Optional[Article]:
        with self._lock:
            hits = self._df[self._df[column] == str(value)]
            if hits.empty:
                return None
            return row_to_article(hits.iloc[0].to_dict())

    def find_by_url(self, url: str) -> Optional[Article]:
        return self._find("url", url)

    def find_by_id(self, article_id: str) -> Optional[Article]:
        return self._find("id", article_id)

    def find_all(self, limit: int = 50, offset: int = 0) -> list[Article]:
        """Newest first."""

        with self._lock:
            # Reverse insertion order first so equal timestamps still list newest first.
            df = self._df.iloc[::-1].sort_values("created_at", ascending=False, kind="stable")
            rows = df.iloc[offset : offset + limit].to_dict("records")
        return [row_to_article(r) for r in rows]

    def count(self) -> int:
        with self._lock:
            return int(len(self._df))

    def count_unenhanced(self) -> int:
        with self._lock:
            return int((self._df["is_enhanced"].str.lower() != "true").sum())

    def create(self, candidate: ArticleCandidate) -> Article:
        content = sanitize_content(candidate.content)
        words = count_words(content)
        now = _now()
        article = Article(
            id=str(uuid.uuid4()),
            title=candidate.title.strip(),
            content=content,
            url=candidate.url,
            scraped_date=now,
            word_count=words,
            reading_time=reading_time(words),
            tags=sorted(set(candidate.tags)),
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            if (self._df["url"] == article.url).any():
                raise DuplicateUrlError(article.url)

            previous = self._df
            new_row = pd.DataFrame([article_to_row(article)], columns=COLUMNS)
            self._df = new_row if previous.empty else pd.concat([previous, new_row], ignore_index=True)
            if self.path is not None:
                try:
                    write_frame(self.path, self._df)
                except (OSError, ValueError, ImportError) as exc:
                    self._df = previous
                    raise PersistenceError(
                        f"could not write article store {self.path}: {exc}",
                        url=article.url,
                        title=article.title,
                    ) from exc

        logger.info("Article created: %s (%s)", article.id, article.url)
        return article

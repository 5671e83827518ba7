from __future__ import annotations

import re
from typing import Iterable

from blog_archive_scraper.config import DEFAULT_TAG_VOCABULARY


def normalize_text(text: str) -> str:
    text = re.sub(r"\s+", " ", text or "").strip()
    return text


def classify_tags(title: str, content: str, vocabulary: Iterable[str] = DEFAULT_TAG_VOCABULARY) -> list[str]:
    """Return the vocabulary terms that occur in the title or content.

    Plain substring matching, so "ai" also hits "maintain". Kept coarse on
    purpose; treat the result as a hint, not a taxonomy.
    """

    haystack = normalize_text(f"{title} {content}").lower()
    tags: set[str] = set()
    for term in vocabulary:
        t = normalize_text(term).lower()
        if t and t in haystack:
            tags.add(t)
    return sorted(tags)

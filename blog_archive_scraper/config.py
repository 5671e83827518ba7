from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_TAG_VOCABULARY = (
    "ai",
    "chatbot",
    "automation",
    "customer service",
    "technology",
    "business",
    "marketing",
    "support",
    "communication",
    "digital",
    "innovation",
    "software",
    "platform",
    "solution",
    "analytics",
)

_DEFAULTS: dict[str, Any] = {
    "source": {
        "listing_url": "https://beyondchats.com/blogs/",
        "article_path_fragment": "/blogs/",
    },
    "render": {
        "headless": True,
        "user_agent": DEFAULT_USER_AGENT,
        "timeout_ms": 30000,
        "listing_settle_seconds": 2.0,
        "article_settle_seconds": 1.0,
        "viewport": {"width": 1920, "height": 1080},
    },
    "crawl": {
        "article_limit": 5,
        "politeness_delay_seconds": 1.0,
        "selection_order": "forward",
        "follow_last_page": True,
    },
    "extract": {
        "min_content_chars": 100,
        "max_title_chars": 500,
        "tag_vocabulary": list(DEFAULT_TAG_VOCABULARY),
    },
    "storage": {
        "output_dir": "data",
        "output_file": "articles.csv",
    },
    "robots": {
        "enforce": False,
        "timeout_seconds": 5,
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
    },
}

SELECTION_ORDERS = ("forward", "reverse")


def _selection_order(value: Any) -> str:
    order = str(value or "forward").lower()
    if order not in SELECTION_ORDERS:
        raise ValueError(f"crawl.selection_order must be one of: {', '.join(SELECTION_ORDERS)}")
    return order


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


@dataclass(frozen=True)
class Config:
    raw: dict[str, Any]

    def _section(self, name: str) -> dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def listing_url(self) -> str:
        return str(self._section("source")["listing_url"])

    @property
    def article_path_fragment(self) -> str:
        return str(self._section("source").get("article_path_fragment") or "/blogs/")

    @property
    def headless(self) -> bool:
        return bool(self._section("render").get("headless", True))

    @property
    def user_agent(self) -> str:
        return str(self._section("render").get("user_agent") or DEFAULT_USER_AGENT)

    @property
    def timeout_ms(self) -> int:
        return int(self._section("render").get("timeout_ms", 30000))

    @property
    def listing_settle_seconds(self) -> float:
        return float(self._section("render").get("listing_settle_seconds", 0.0))

    @property
    def article_settle_seconds(self) -> float:
        return float(self._section("render").get("article_settle_seconds", 0.0))

    @property
    def viewport(self) -> dict[str, int]:
        vp = self._section("render").get("viewport") or {}
        return {"width": int(vp.get("width", 1920)), "height": int(vp.get("height", 1080))}

    @property
    def article_limit(self) -> int:
        return int(self._section("crawl").get("article_limit", 5))

    @property
    def politeness_delay_seconds(self) -> float:
        return float(self._section("crawl").get("politeness_delay_seconds", 1.0))

    @property
    def selection_order(self) -> str:
        return _selection_order(self._section("crawl").get("selection_order"))

    @property
    def follow_last_page(self) -> bool:
        return bool(self._section("crawl").get("follow_last_page", True))

    @property
    def min_content_chars(self) -> int:
        return int(self._section("extract").get("min_content_chars", 100))

    @property
    def max_title_chars(self) -> int:
        return int(self._section("extract").get("max_title_chars", 500))

    @property
    def tag_vocabulary(self) -> tuple[str, ...]:
        vocab = self._section("extract").get("tag_vocabulary")
        if not vocab:
            return DEFAULT_TAG_VOCABULARY
        return tuple(str(t).strip().lower() for t in vocab if str(t).strip())

    @property
    def output_dir(self) -> Path:
        return Path(self._section("storage").get("output_dir") or "data")

    @property
    def output_file(self) -> Optional[Path]:
        """Store file, or ``None`` for a purely in-memory store."""

        name = self._section("storage").get("output_file")
        if not name:
            return None
        return self.output_dir / str(name)

    @property
    def robots_enforce(self) -> bool:
        return bool(self._section("robots").get("enforce", False))

    @property
    def robots_timeout_seconds(self) -> float:
        return float(self._section("robots").get("timeout_seconds", 5))

    @property
    def log_level(self) -> str:
        return str(self._section("logging").get("level") or "INFO").upper()

    @property
    def log_format(self) -> str:
        return str(self._section("logging").get("format") or _DEFAULTS["logging"]["format"])


def load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> Config:
    """Build a Config from defaults, an optional YAML file and the environment."""

    if path is None:
        path = os.getenv("BLOG_SCRAPER_CONFIG") or None

    raw = copy.deepcopy(_DEFAULTS)
    if path is not None:
        raw = _merge(raw, load_yaml(path))

    listing_url = os.getenv("BLOG_SCRAPER_LISTING_URL")
    if listing_url:
        raw["source"]["listing_url"] = listing_url
    log_level = os.getenv("BLOG_SCRAPER_LOG_LEVEL")
    if log_level:
        raw["logging"]["level"] = log_level

    if overrides:
        raw = _merge(raw, overrides)

    # Reject bad values before a browser is started.
    _selection_order((raw.get("crawl") or {}).get("selection_order"))
    return Config(raw=raw)

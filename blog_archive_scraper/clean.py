from __future__ import annotations

import re

from bs4 import BeautifulSoup, NavigableString


_NOISE_SELECTORS = ", ".join(
    (
        "head",
        "script",
        "style",
        "noscript",
        "template",
        "iframe",
        "nav",
        "header",
        "footer",
        "aside",
        "form",
        ".advertisement",
        ".ads",
        ".ad",
        ".social-share",
        "[class*='sponsor']",
        "[id^='ad-']",
        "[id^='ads-']",
    )
)

_BLOCK_TAGS = (
    "p",
    "div",
    "section",
    "article",
    "main",
    "blockquote",
    "pre",
    "ul",
    "ol",
    "li",
    "table",
    "tr",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "figure",
    "figcaption",
)

_HSPACE_RE = re.compile(r"[^\S\n]+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

# Upper bound on re-parse passes; each non-final pass only ever removes markup.
_MAX_PASSES = 16

_SCRIPT_BLOCK_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_IFRAME_BLOCK_RE = re.compile(r"<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>", re.IGNORECASE)
_JS_URL_RE = re.compile(r"javascript:", re.IGNORECASE)
_INLINE_HANDLER_RE = re.compile(r"\bon\w+\s*=", re.IGNORECASE)


def normalize_whitespace(text: str) -> str:
    """Collapse horizontal whitespace and keep at most one blank line in a row."""

    text = _CONTROL_RE.sub("", text or "")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_HSPACE_RE.sub(" ", line).strip() for line in text.split("\n")]
    text = "\n".join(lines)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def _html_to_text(html: str) -> str:
    soup = BeautifulSoup(html or "", "lxml")

    for tag in soup.select(_NOISE_SELECTORS):
        tag.decompose()

    for br in soup.find_all("br"):
        br.replace_with(NavigableString("\n"))

    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_before(NavigableString("\n"))
        tag.insert_after(NavigableString("\n"))

    return normalize_whitespace(soup.get_text())


def clean_html(html: str) -> str:
    """Strip non-content markup from rendered HTML and return plain text.

    The text is re-parsed until it no longer changes, so escaped markup that
    surfaces after the first pass is removed too and cleaning is idempotent.
    """

    text = _html_to_text(html)
    for _ in range(_MAX_PASSES):
        again = _html_to_text(text)
        if again == text:
            break
        text = again
    return text


def sanitize_content(content: str) -> str:
    content = _SCRIPT_BLOCK_RE.sub("", content or "")
    content = _IFRAME_BLOCK_RE.sub("", content)
    content = _JS_URL_RE.sub("", content)
    content = _INLINE_HANDLER_RE.sub("", content)
    return content.strip()

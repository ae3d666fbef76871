"""HTML to plain-text helpers for label/section scanning.

Deterministic and tolerant: malformed or empty markup yields an empty string
rather than an exception.
"""

from __future__ import annotations

import re
import unicodedata

import ftfy
from bs4 import BeautifulSoup

__all__ = [
    "minimal_text_fix",
    "parse_html",
    "html_to_text",
    "fragment_text",
]

_ZERO_WIDTH = {0x200B, 0x200C, 0x200D, 0x2060, 0xFEFF}
_REMOVE = {0x00, 0x0B, 0x0C}
_TRANSLATE = {cp: None for cp in _ZERO_WIDTH | _REMOVE}

# Block-level tags that end a line in the rendered text.
_LINE_BREAK_TAGS = ("p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr", "table", "blockquote")


def minimal_text_fix(text: str) -> str:
    """Fix mojibake and strip zero-width/control noise without collapsing structure."""

    if not text:
        return ""
    normalized = unicodedata.normalize("NFC", text)
    fixed = ftfy.fix_text(normalized, normalization="NFC", uncurl_quotes=False)
    return fixed.translate(_TRANSLATE)


def parse_html(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "lxml")
    except Exception:
        return BeautifulSoup(html, "html.parser")


def html_to_text(html: str) -> str:
    """Strip markup to plain text, one line per block element."""

    if not html or not html.strip():
        return ""
    soup = parse_html(html)
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(_LINE_BREAK_TAGS):
        tag.append("\n")
    text = soup.get_text()
    text = text.replace("\r", "").replace("\xa0", " ")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return minimal_text_fix(text).strip()


def fragment_text(html: str) -> str:
    """Flatten a markup fragment to a single whitespace-collapsed line."""

    if not html:
        return ""
    text = parse_html(html).get_text(" ")
    return re.sub(r"\s+", " ", minimal_text_fix(text)).strip()

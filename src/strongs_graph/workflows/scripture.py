"""Companion verse documents for scripture references found on lexicon pages."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List

from bs4 import BeautifulSoup

from ..core.keys import (
    K_ALIASES,
    K_BOOK,
    K_CHAPTER,
    K_REFERENCE,
    K_RELATED_STRONGS,
    K_SOURCE_INTERLINEAR,
    K_SOURCE_NASB,
    K_TYPE,
    K_VERSE,
    TYPE_VERSE,
)
from .html_normalize import minimal_text_fix, parse_html
from .ids import scripture_aliases, scripture_note_path, slug_to_book_name
from .models import ScriptureRef
from .store import DocumentStore
from .web_fetch import Fetcher
from .writer import render_header

logger = logging.getLogger(__name__)

_NASB_LABELS = ("NASB", "New American Standard")


def _version_text(span) -> str:
    """Collect the verse text that follows a ``span.versiontext`` label."""

    parts: List[str] = []
    node = span.next_sibling
    while node is not None:
        name = getattr(node, "name", None)
        if name:
            classes = node.get("class", [])
            if name == "span" and ("versiontext" in classes or "p" in classes):
                break
            if name == "div":
                break
            if name != "br":
                parts.append(node.get_text())
        else:
            text = str(node).strip()
            if text:
                parts.append(text)
        node = node.next_sibling
    return re.sub(r"\s+", " ", " ".join(parts)).strip()


def extract_nasb_text(html: str) -> str:
    """Best-effort NASB verse text from a BibleHub parallel page; empty if not found."""

    if not html:
        return ""
    soup: BeautifulSoup = parse_html(html)
    for span in soup.find_all("span", class_="versiontext"):
        label = span.get_text(strip=True)
        if any(marker in label for marker in _NASB_LABELS):
            return minimal_text_fix(_version_text(span))
    return ""


def render_scripture_note(ref: ScriptureRef, text: str, related_links: Iterable[str]) -> str:
    header = render_header(
        [
            (K_TYPE, TYPE_VERSE),
            (K_REFERENCE, ref.display),
            (K_BOOK, slug_to_book_name(ref.slug)),
            (K_CHAPTER, ref.chapter),
            (K_VERSE, ref.verse),
            (K_ALIASES, scripture_aliases(ref)),
            (K_SOURCE_NASB, ref.nasb_url),
            (K_SOURCE_INTERLINEAR, ref.interlinear_url),
            (K_RELATED_STRONGS, list(related_links)),
        ],
        quote_lists=(K_ALIASES, K_RELATED_STRONGS),
    )
    return header + "\n" + f"# {ref.display}\n\n{text.strip()}\n"


async def ensure_scripture_note(
    store: DocumentStore,
    fetcher: Fetcher,
    root_folder: str,
    ref: ScriptureRef,
    related_links: Iterable[str],
) -> bool:
    """Create the verse document for ``ref`` unless one already exists.

    Returns True when a document was written. Existing verse documents are
    never modified.
    """

    path = scripture_note_path(root_folder, ref)
    if await store.exists(path):
        return False

    folder = path.rsplit("/", 1)[0] if "/" in path else ""
    if folder and not await store.exists(folder):
        await store.create_folder(folder)

    html = await fetcher.get(ref.nasb_url, True)
    text = extract_nasb_text(html)
    if not text:
        logger.debug("no NASB text found on %s", ref.nasb_url)

    await store.create(path, render_scripture_note(ref, text, related_links))
    logger.info("created verse note %s", path)
    return True


__all__ = ["extract_nasb_text", "render_scripture_note", "ensure_scripture_note"]

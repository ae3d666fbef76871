"""Best-effort field and link extraction from BibleHub Strong's pages.

Extraction never raises on missing data: absent labels become ``None`` and
absent sections become empty strings. Section bodies are located by a header
substring and sliced to a fixed-size window, so a body may run into the
following section or pick up unrelated page text.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from .html_normalize import html_to_text
from .ids import lang_from_strong, lang_page_url, make_scripture_ref, normalize_strong_id
from .models import SECTION_KEYS, Entry, Links, ScriptureRef

logger = logging.getLogger(__name__)

# (header substrings tried in order, window size in characters)
SECTION_WINDOWS: Dict[str, Tuple[Tuple[str, ...], int]] = {
    "helps": (("HELPS Word-studies",), 2000),
    "thayers": (("Thayer's Greek Lexicon",), 3000),
    "forms_transliterations": (("Forms of", "Forms & Transliterations"), 1200),
    "englishmans_concordance": (("Englishman's Concordance",), 3000),
    "concordance": (("Concordance",), 2000),
    "topical_lexicon": (("Topical Lexicon",), 2000),
}

# Sections scanned for Strong's citations that become related_ids edges.
RELATED_SOURCE_SECTIONS = ("helps", "thayers", "strongs_definition")

_SEE_RE = re.compile(r"\bSee\s+([0-9]{1,5})\b")
_STRONGS_CITATION_RE = re.compile(r"\bSTRONG'?S?\s*(?:NT|OT)?\s*#?\s*0*([0-9]{1,5})\b", re.IGNORECASE)
_PREFIXED_ID_RE = re.compile(r"\b([GH])0*([0-9]{1,5})\b")
_HELPS_CITATION_RE = re.compile(r"\b([0-9]{1,5})\s*/\s*[^\s/\d]")
_INTERLINEAR_RE = re.compile(
    r"(?:https?://(?:www\.)?biblehub\.com)?/interlinear/([a-z0-9_]+)/0*(\d+)-0*(\d+)\.htm",
    re.IGNORECASE,
)


def pick_label(text: str, label: str) -> Optional[str]:
    """Return the rest of the line after ``label:`` (case-insensitive), if present."""

    match = re.search(rf"{re.escape(label)}[ \t]*:[ \t]*(.+)", text, re.IGNORECASE)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def extract_section_approx(text: str, headers: Iterable[str], max_chars: int) -> str:
    """Slice ``max_chars`` of text starting at the first header found."""

    lowered = text.lower()
    for header in headers:
        idx = lowered.find(header.lower())
        if idx >= 0:
            return text[idx : idx + max_chars].strip()
    return ""


def _human(key: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), key.replace("_", " "))


def build_lexical_summary_block(fields: Dict[str, Optional[str]]) -> str:
    lines = [f"- **{_human(key)}:** {value}" for key, value in fields.items() if value]
    return "\n".join(lines)


def _uniq(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def extract_see_also(text: str, lang: str) -> List[str]:
    found = []
    for match in _SEE_RE.finditer(text):
        strong = normalize_strong_id(match.group(1), lang)
        if strong:
            found.append(strong)
    return _uniq(found)


def extract_strong_refs(text: str, lang: str) -> List[str]:
    """Strong's citations in a section body, normalized against ``lang``.

    Recognized shapes: ``STRONGS NT 2198`` / ``Strong's 2198``, explicit
    ``G2198`` / ``H1623``, and the HELPS ``2198 /záō`` form.
    """

    if not text:
        return []
    hits: List[Tuple[int, str]] = []
    for match in _STRONGS_CITATION_RE.finditer(text):
        hits.append((match.start(), normalize_strong_id(match.group(1), lang) or ""))
    for match in _PREFIXED_ID_RE.finditer(text):
        hits.append((match.start(), normalize_strong_id(match.group(0)) or ""))
    for match in _HELPS_CITATION_RE.finditer(text):
        hits.append((match.start(), normalize_strong_id(match.group(1), lang) or ""))
    hits.sort(key=lambda hit: hit[0])
    return _uniq(strong for _, strong in hits if strong)


def extract_scripture_refs(html: str) -> List[ScriptureRef]:
    """Verse references from embedded interlinear links, one per (slug, chapter, verse)."""

    refs: List[ScriptureRef] = []
    seen = set()
    for match in _INTERLINEAR_RE.finditer(html or ""):
        slug = match.group(1).lower()
        chapter = int(match.group(2))
        verse = int(match.group(3))
        key = (slug, chapter, verse)
        if key in seen:
            continue
        seen.add(key)
        refs.append(make_scripture_ref(slug, chapter, verse))
    return refs


def parse_entry(strong: str, url: str, html: str) -> Entry:
    """Build an :class:`Entry` from a raw Strong's page."""

    lang = lang_from_strong(strong)
    text = html_to_text(html)

    lemma = pick_label(text, "Original Word")
    transliteration = pick_label(text, "Transliteration")
    phonetic = pick_label(text, "Phonetic Spelling")
    pronunciation = pick_label(text, "Pronunciation")
    part_of_speech = pick_label(text, "Part of Speech")
    definition = pick_label(text, "Definition")

    blocks: Dict[str, str] = {key: "" for key in SECTION_KEYS}
    blocks["lexical_summary"] = build_lexical_summary_block(
        {
            "lemma": lemma,
            "transliteration": transliteration,
            "pronunciation": pronunciation,
            "phonetic": phonetic,
            "part_of_speech": part_of_speech,
            "definition": definition,
        }
    )
    blocks["strongs_definition"] = definition or ""
    for key, (headers, window) in SECTION_WINDOWS.items():
        blocks[key] = extract_section_approx(text, headers, window)

    related: List[str] = []
    for key in RELATED_SOURCE_SECTIONS:
        related.extend(extract_strong_refs(blocks[key], lang))
    related = [candidate for candidate in _uniq(related) if candidate != strong]

    links = Links(
        see_also=extract_see_also(text, lang),
        related_ids=related,
        topical=[],
        scripture=extract_scripture_refs(html),
    )
    logger.debug(
        "parsed %s: lemma=%r see_also=%d related=%d scripture=%d",
        strong,
        lemma,
        len(links.see_also),
        len(links.related_ids),
        len(links.scripture),
    )
    return Entry(
        strong=strong,
        lang=lang,
        source_primary=url,
        lemma=lemma,
        transliteration=transliteration,
        phonetic=phonetic,
        pronunciation=pronunciation,
        part_of_speech=part_of_speech,
        source_alt=[lang_page_url(strong)],
        blocks=blocks,
        links=links,
    )


__all__ = [
    "SECTION_WINDOWS",
    "pick_label",
    "extract_section_approx",
    "build_lexical_summary_block",
    "extract_see_also",
    "extract_strong_refs",
    "extract_scripture_refs",
    "parse_entry",
]

"""Strong's identifier, BibleHub URL and vault path helpers shared by the workflow."""

from __future__ import annotations

import re
from typing import List, Optional

from .models import ScriptureRef, SeedError

BIBLEHUB_BASE = "https://biblehub.com"

_ID_RE = re.compile(r"\b([GH])\s*0*([1-9][0-9]{0,4})\b", re.IGNORECASE)
_BARE_RE = re.compile(r"\b0*([1-9][0-9]{0,4})\b")
_STRONGS_URL_RE = re.compile(r"biblehub\.com/strongs/(greek|hebrew)/0*([1-9]\d*)\.htm", re.IGNORECASE)
_LANG_URL_RE = re.compile(r"biblehub\.com/(greek|hebrew)/0*([1-9]\d*)\.htm", re.IGNORECASE)
_ILLEGAL_FILENAME_RE = re.compile(r'[\\/:*?"<>|]')


def _prefix_for(lang: str) -> str:
    return "G" if lang.lower() == "greek" else "H"


def normalize_strong_id(raw: str, lang_hint: Optional[str] = None) -> Optional[str]:
    """Return ``G2198``-style ids for ``g 02198``-style input, or None.

    Ids are a G/H prefix and a positive number of at most five digits.

    A bare number is only accepted when ``lang_hint`` says which lexicon it
    belongs to.
    """

    s = (raw or "").strip()
    if not s:
        return None
    match = _ID_RE.search(s)
    if match:
        return match.group(1).upper() + str(int(match.group(2)))
    match = _BARE_RE.search(s)
    if match and lang_hint:
        return _prefix_for(lang_hint) + str(int(match.group(1)))
    return None


def lang_from_strong(strong: str) -> str:
    return "greek" if strong.upper().startswith("G") else "hebrew"


def strongs_url(strong: str) -> str:
    """Primary lexicon page for an id."""

    return f"{BIBLEHUB_BASE}/strongs/{lang_from_strong(strong)}/{strong[1:]}.htm"


def lang_page_url(strong: str) -> str:
    """Secondary Greek/Hebrew page for an id."""

    return f"{BIBLEHUB_BASE}/{lang_from_strong(strong)}/{strong[1:]}.htm"


def normalize_seed(raw: str, lang_hint: str = "greek") -> str:
    """Turn a user-supplied seed (URL, id or bare number) into an id.

    Raises :class:`SeedError` before any network activity when the seed
    cannot be interpreted.
    """

    s = (raw or "").strip()
    for pattern in (_STRONGS_URL_RE, _LANG_URL_RE):
        match = pattern.search(s)
        if match:
            return _prefix_for(match.group(1)) + str(int(match.group(2)))
    strong = normalize_strong_id(s)
    if strong:
        return strong
    strong = normalize_strong_id(s, lang_hint)
    if strong:
        return strong
    raise SeedError(raw)


def safe_file_name(name: str) -> str:
    """Replace characters illegal in file names and collapse whitespace."""

    cleaned = _ILLEGAL_FILENAME_RE.sub("—", name or "")
    return re.sub(r"\s+", " ", cleaned).strip()


def normalize_folder(folder: str) -> str:
    return (folder or "").strip().strip("/")


def join_path(*parts: str) -> str:
    """Join vault-relative path parts with forward slashes, dropping empties."""

    cleaned = [normalize_folder(p) for p in parts]
    return "/".join(p for p in cleaned if p)


# =============================================================================
# Scripture references
# =============================================================================

def slug_to_book_name(slug: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in slug.split("_") if word)


def make_scripture_ref(slug: str, chapter: int, verse: int) -> ScriptureRef:
    slug = slug.lower()
    display = f"{slug_to_book_name(slug)} {chapter}:{verse}"
    return ScriptureRef(
        slug=slug,
        chapter=chapter,
        verse=verse,
        display=display,
        interlinear_url=f"{BIBLEHUB_BASE}/interlinear/{slug}/{chapter}-{verse}.htm",
        nasb_url=f"{BIBLEHUB_BASE}/nasb/{slug}/{chapter}-{verse}.htm",
    )


def scripture_note_path(root_folder: str, ref: ScriptureRef) -> str:
    book = safe_file_name(slug_to_book_name(ref.slug))
    return join_path(root_folder, book, f"{ref.chapter}-{ref.verse}.md")


def scripture_link_target(root_folder: str, ref: ScriptureRef) -> str:
    """Link target (path without extension) for a verse document."""

    return scripture_note_path(root_folder, ref)[: -len(".md")]


def _book_abbrev(book: str) -> str:
    parts = book.split(" ")
    if len(parts) == 1:
        return parts[0][:3]
    if parts[0].isdigit():
        return f"{parts[0]} {parts[1][:3]}".strip()
    return parts[0][:3]


def scripture_aliases(ref: ScriptureRef) -> List[str]:
    """Full, abbreviated and compact abbreviated forms of a reference."""

    book = slug_to_book_name(ref.slug)
    suffix = f"{ref.chapter}:{ref.verse}"
    abbr = _book_abbrev(book)
    candidates = [f"{book} {suffix}"]
    if abbr:
        candidates.append(f"{abbr} {suffix}")
        candidates.append(f"{abbr.replace(' ', '')}{suffix}")
    return list(dict.fromkeys(candidates))


def sanity_check() -> None:
    assert normalize_strong_id("g 02198") == "G2198"
    assert normalize_strong_id("2198") is None
    assert normalize_seed("https://biblehub.com/strongs/hebrew/1623.htm") == "H1623"
    assert safe_file_name("a/b") == "a—b"


sanity_check()

__all__ = [
    "BIBLEHUB_BASE",
    "normalize_strong_id",
    "lang_from_strong",
    "strongs_url",
    "lang_page_url",
    "normalize_seed",
    "safe_file_name",
    "normalize_folder",
    "join_path",
    "slug_to_book_name",
    "make_scripture_ref",
    "scripture_note_path",
    "scripture_link_target",
    "scripture_aliases",
    "sanity_check",
]

"""Render lexicon documents and merge re-imported sections into existing ones.

A document is a ``---`` delimited metadata header followed by a markdown
body. Each imported section is introduced by ``<!-- imported: <key> -->``;
the span after the marker, up to the next heading, marker or rule line, is
owned by the importer and is the only part a merge rewrites. The header is
written once on creation and never rewritten by a merge.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..core.keys import (
    K_ALIASES,
    K_CRAWL_DEPTH,
    K_CRAWL_ROOT,
    K_IMPORT_RECIPE,
    K_IMPORTED_AT,
    K_LANG,
    K_LEMMA,
    K_LINKS_RELATED,
    K_LINKS_SCRIPTURE,
    K_LINKS_SEE_ALSO,
    K_LINKS_TOPICAL,
    K_PART_OF_SPEECH,
    K_PHONETIC,
    K_PRONUNCIATION,
    K_SECTIONS_INCLUDED,
    K_SOURCE_ALT,
    K_SOURCE_PRIMARY,
    K_STRONG,
    K_TRANSLITERATION,
    K_TYPE,
    TYPE_LEXICON,
)
from .ids import join_path, safe_file_name, scripture_link_target
from .models import SECTION_TITLES, Created, Entry, Merged, Recipe, ScriptureRef
from .store import DocumentStore

logger = logging.getLogger(__name__)

HeaderValue = Union[str, int, Iterable[str], None]

_MARKER_TEMPLATE = "<!-- imported: {key} -->"
_SPAN_END_RE = re.compile(r"^(?:#{1,6}\s|<!-- imported:|-{3,}[ \t]*$)", re.MULTILINE)


def section_marker(key: str) -> str:
    return _MARKER_TEMPLATE.format(key=key)


# =============================================================================
# Header helpers
# =============================================================================

def render_header(fields: List[Tuple[str, HeaderValue]], *, quote_lists: Iterable[str] = ()) -> str:
    """Render ``key: value`` lines; list values become indented dash lists.

    A ``("", None)`` pair inserts a blank separator line.
    """

    quoted = set(quote_lists)
    lines = ["---"]
    for key, value in fields:
        if not key:
            lines.append("")
            continue
        if isinstance(value, (list, tuple)):
            lines.append(f"{key}:")
            for item in value:
                lines.append(f'  - "{item}"' if key in quoted else f"  - {item}")
            continue
        lines.append(f"{key}: {'' if value is None else value}")
    lines.append("---")
    return "\n".join(lines) + "\n"


def split_header(text: str) -> Tuple[str, str]:
    """Return ``(header, body)``; header is empty when the document has none."""

    if not text.startswith("---"):
        return "", text
    end = text.find("\n---", 3)
    if end < 0:
        return "", text
    cut = end + len("\n---")
    return text[:cut], text[cut:]


def header_value(text: str, key: str) -> Optional[str]:
    header, _ = split_header(text)
    match = re.search(rf"^{re.escape(key)}:[ \t]*(.*)$", header, re.MULTILINE)
    if not match:
        return None
    return match.group(1).strip() or None


def add_alias_to_header(text: str, alias: str, strong: str) -> str:
    """Append ``alias`` to the header's ``aliases:`` list.

    Creates the list (seeded with ``strong``) when missing or empty, and
    rewrites an inline ``[a, b]`` list as a dash list. Documents without a
    header and aliases already present are returned unchanged.
    """

    header, body = split_header(text)
    if not header:
        return text
    match = re.search(r"^aliases:[ \t]*\n((?:[ \t]+-.*\n?)*)", header + "\n", re.MULTILINE)
    inline = re.search(r"^aliases:[ \t]*(\S.*?)[ \t]*$", header, re.MULTILINE)
    if not match and inline:
        # flow-style ``[a, b]`` or a single scalar; rewritten as a dash list
        raw = inline.group(1)
        if raw.startswith("[") and raw.endswith("]"):
            items = [item.strip().strip("'\"") for item in raw[1:-1].split(",") if item.strip()]
        else:
            items = [raw.strip("'\"")]
        if alias in items:
            return text
        rebuilt = f"{K_ALIASES}:" + "".join(f"\n  - {item}" for item in [*(items or [strong]), alias])
        return header[: inline.start()] + rebuilt + header[inline.end() :] + body
    if not match:
        insert = f"\n{K_ALIASES}:\n  - {strong}\n  - {alias}"
        return header[: -len("\n---")] + insert + "\n---" + body
    existing = [line.strip()[1:].strip().strip('"') for line in match.group(1).splitlines() if line.strip()]
    if alias in existing:
        return text
    insert_at = match.end(1)
    padded = header + "\n"
    addition = f"  - {alias}\n"
    if insert_at > 0 and padded[insert_at - 1] != "\n":
        addition = "\n" + addition
    updated = padded[:insert_at] + addition + padded[insert_at:]
    return updated[:-1] + body


def render_placeholder(strong: str, lemma: str) -> str:
    """Minimal lexicon document created so a linked term has a target."""

    header = render_header(
        [
            (K_TYPE, TYPE_LEXICON),
            (K_STRONG, strong),
            (K_LEMMA, lemma),
            (K_ALIASES, [strong, lemma]),
        ]
    )
    return header + "\n" + f"# {strong}\n"


# =============================================================================
# Section blocks
# =============================================================================

def _neutralize_boundaries(block: str) -> str:
    """Escape lines that would otherwise end the imported span early."""

    return "\n".join(
        "\\" + line if _SPAN_END_RE.match(line + "\n") else line for line in block.splitlines()
    )


def imported_span(block: str) -> str:
    """Text placed between a section marker and the line that ends its span."""

    body = (block or "").strip()
    return f"\n{body}\n\n" if body else "\n\n"


def linkify_scripture_refs(text: str, refs: Iterable[ScriptureRef], root_folder: str) -> str:
    """Rewrite verse display strings (``John 3:16``) into links to their verse documents."""

    targets: Dict[str, str] = {}
    for ref in refs:
        if ref.display and ref.display not in targets:
            targets[ref.display] = scripture_link_target(root_folder, ref)
    if not text or not targets:
        return text
    alternation = "|".join(re.escape(d) for d in sorted(targets, key=len, reverse=True))
    pattern = re.compile(rf"(?<!\|)(?<![0-9] )\b({alternation})\b(?!\]\])")
    return pattern.sub(lambda m: f"[[{targets[m.group(1)]}|{m.group(1)}]]", text)


def prepare_blocks(entry: Entry, recipe: Recipe) -> Dict[str, str]:
    """Final section bodies for an entry, shared by fresh renders and merges."""

    blocks = {key: entry.block(key) for key in recipe.ordered_sections()}
    if "scripture" in recipe.link_types and entry.links.scripture:
        blocks = {
            key: linkify_scripture_refs(value, entry.links.scripture, recipe.scripture_root_folder)
            for key, value in blocks.items()
        }
    return {key: _neutralize_boundaries(value.strip()) for key, value in blocks.items()}


def render_section(key: str, block: str) -> str:
    return f"## {SECTION_TITLES[key]}\n{section_marker(key)}{imported_span(block)}---\n\n"


def replace_imported_block(doc: str, key: str, replacement: str) -> str:
    """Replace the span owned by ``key``'s marker; no-op when the marker is absent."""

    marker = section_marker(key)
    idx = doc.find(marker)
    if idx < 0:
        return doc
    start = idx + len(marker)
    match = _SPAN_END_RE.search(doc, start)
    end = match.start() if match else len(doc)
    return doc[:start] + imported_span(replacement) + doc[end:]


# =============================================================================
# Writer
# =============================================================================

class Writer:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def build_title(self, entry: Entry, recipe: Recipe) -> str:
        title = recipe.note_title_pattern
        for placeholder, value in (
            ("{{strong}}", entry.strong),
            ("{{id}}", entry.strong),
            ("{{lemma}}", entry.lemma or ""),
            ("{{transliteration}}", entry.transliteration or ""),
        ):
            title = title.replace(placeholder, value)
        return safe_file_name(title)

    def file_path(self, title: str, recipe: Recipe) -> str:
        return join_path(recipe.root_folder, f"{title}.md")

    async def ensure_folder(self, folder: str) -> None:
        if folder and not await self.store.exists(folder):
            await self.store.create_folder(folder)

    def _strong_links(self, ids: Iterable[str], recipe: Recipe) -> List[str]:
        if "strongs" not in recipe.link_types:
            return []
        return [f"[[{strong}]]" for strong in ids]

    def _scripture_links(self, entry: Entry, recipe: Recipe) -> List[str]:
        if "scripture" not in recipe.link_types:
            return []
        return [
            f"[[{scripture_link_target(recipe.scripture_root_folder, ref)}|{ref.display}]]"
            for ref in entry.links.scripture
        ]

    def render_new(self, entry: Entry, recipe: Recipe, *, now: Optional[datetime] = None) -> str:
        imported_at = (now or datetime.now(timezone.utc)).date().isoformat()
        see_also = self._strong_links(entry.links.see_also, recipe)
        related = self._strong_links(entry.links.related_ids, recipe)
        topical = self._strong_links(entry.links.topical, recipe)
        scripture = self._scripture_links(entry, recipe)

        aliases = [entry.strong]
        if entry.transliteration:
            aliases.append(entry.transliteration)

        header = render_header(
            [
                (K_TYPE, TYPE_LEXICON),
                (K_LANG, entry.lang),
                (K_STRONG, entry.strong),
                ("", None),
                (K_LEMMA, entry.lemma),
                (K_TRANSLITERATION, entry.transliteration),
                (K_PRONUNCIATION, entry.pronunciation),
                (K_PHONETIC, entry.phonetic),
                (K_PART_OF_SPEECH, entry.part_of_speech),
                ("", None),
                (K_ALIASES, aliases),
                ("", None),
                (K_SOURCE_PRIMARY, entry.source_primary),
                (K_SOURCE_ALT, list(entry.source_alt)),
                ("", None),
                (K_IMPORTED_AT, imported_at),
                (K_IMPORT_RECIPE, recipe.id),
                ("", None),
                (K_SECTIONS_INCLUDED, recipe.ordered_sections()),
                ("", None),
                (K_LINKS_SEE_ALSO, see_also),
                (K_LINKS_RELATED, related),
                (K_LINKS_TOPICAL, topical),
                (K_LINKS_SCRIPTURE, scripture),
                ("", None),
                (K_CRAWL_DEPTH, recipe.max_depth),
                (K_CRAWL_ROOT, entry.strong),
            ],
            quote_lists=(K_LINKS_SEE_ALSO, K_LINKS_RELATED, K_LINKS_TOPICAL, K_LINKS_SCRIPTURE),
        )

        blocks = prepare_blocks(entry, recipe)
        title_line = f"# {entry.strong} — {entry.lemma or ''} ({entry.transliteration or ''})".strip()
        body = [
            title_line,
            "",
            f"> **Part of Speech:** {entry.part_of_speech or ''}  ",
            f"> **Pronunciation:** {entry.pronunciation or ''}  ",
            f"> **Primary source:** {entry.source_primary}",
            "",
            "---",
            "",
            "".join(render_section(key, blocks[key]) for key in recipe.ordered_sections()).rstrip("\n"),
            "",
            "## Outbound Links",
            "",
            "**See also (direct Strong's cross-refs):**  ",
            ", ".join(see_also),
            "",
            "**Related Strong's (lexical / semantic):**  ",
            ", ".join(related),
            "",
            "**Topical connections:**  ",
            ", ".join(topical),
            "",
            "**Scripture references:**  ",
            ", ".join(scripture),
            "",
        ]
        return header + "\n" + "\n".join(body)

    def merge_text(self, text: str, entry: Entry, recipe: Recipe) -> str:
        blocks = prepare_blocks(entry, recipe)
        for key in recipe.ordered_sections():
            text = replace_imported_block(text, key, blocks[key])
        return text

    async def merge_into_file(self, path: str, entry: Entry, recipe: Recipe) -> bool:
        original = await self.store.read(path)
        updated = self.merge_text(original, entry, recipe)
        if updated == original:
            return False
        await self.store.modify(path, updated)
        return True

    async def upsert(self, entry: Entry, recipe: Recipe) -> Union[Created, Merged]:
        await self.ensure_folder(join_path(recipe.root_folder))
        path = self.file_path(self.build_title(entry, recipe), recipe)

        if await self.store.exists(path):
            changed = await self.merge_into_file(path, entry, recipe)
            logger.info("merged %s into %s (changed=%s)", entry.strong, path, changed)
            return Merged(path=path, changed=changed)

        await self.store.create(path, self.render_new(entry, recipe))
        logger.info("created lexicon note %s", path)
        return Created(path=path)


__all__ = [
    "section_marker",
    "render_header",
    "split_header",
    "header_value",
    "add_alias_to_header",
    "render_placeholder",
    "imported_span",
    "linkify_scripture_refs",
    "prepare_blocks",
    "render_section",
    "replace_imported_block",
    "Writer",
]

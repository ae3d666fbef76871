"""Breadth-first crawl over Strong's entries connected by typed edges.

One :meth:`Crawler.run` processes its queue strictly sequentially: fetch,
parse, optional Greek/Hebrew term linking, upsert, verse notes, then enqueue
the next hops. A failing node is recorded in the result and the run moves on.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections import deque
from dataclasses import replace
from typing import Deque, Dict, Iterable, List, Optional, Set, Tuple

from ..core.keys import K_LEMMA, K_STRONG
from .extract import parse_entry
from .ids import join_path, normalize_strong_id, strongs_url
from .models import EDGE_TYPES, CrawlResult, Entry, QueueItem, Recipe, WriteError
from .scripture import ensure_scripture_note
from .store import DocumentStore
from .web_fetch import Fetcher
from .writer import Writer, add_alias_to_header, header_value, render_placeholder

logger = logging.getLogger(__name__)

_GREEK_CHARS = "\u0370-\u03ff\u1f00-\u1fff"
_HEBREW_CHARS = "\u0590-\u05ff\ufb1d-\ufb4f"
_COMBINING = "\u0300-\u036f"
_SCRIPT_CHARS = _GREEK_CHARS + _HEBREW_CHARS + _COMBINING
_GREEK_RUN_RE = re.compile(f"[{_GREEK_CHARS}][{_GREEK_CHARS}{_COMBINING}]*")
_HEBREW_RUN_RE = re.compile(f"[{_HEBREW_CHARS}]+")

LemmaIndex = Dict[str, str]


def extract_script_tokens(text: str) -> List[str]:
    """Distinct Greek and Hebrew runs of two or more characters, in order of appearance."""

    if not text:
        return []
    hits: List[Tuple[int, str]] = []
    for pattern in (_GREEK_RUN_RE, _HEBREW_RUN_RE):
        hits.extend((m.start(), m.group(0)) for m in pattern.finditer(text) if len(m.group(0)) >= 2)
    hits.sort(key=lambda hit: hit[0])
    return list(dict.fromkeys(token for _, token in hits))


def replace_token_with_link(text: str, token: str, link: str) -> str:
    """Replace whole-run occurrences of ``token``; longer runs containing it are left alone."""

    pattern = re.compile(rf"(?<![{_SCRIPT_CHARS}]){re.escape(token)}(?![{_SCRIPT_CHARS}])")
    return pattern.sub(lambda _m: link, text)


def _id_in_name_re(strong: str) -> re.Pattern:
    return re.compile(rf"(?<![A-Za-z0-9]){re.escape(strong)}(?![0-9])")


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class Crawler:
    def __init__(self, store: DocumentStore, fetcher: Fetcher, writer: Optional[Writer] = None) -> None:
        self.store = store
        self.fetcher = fetcher
        self.writer = writer or Writer(store)

    async def run(self, seed: str, recipe: Recipe, cancel: Optional[asyncio.Event] = None) -> CrawlResult:
        """Crawl outward from ``seed`` (an already-normalized id) within ``recipe``'s depth and node limits."""

        self.fetcher.set_rate_limit(recipe.rate_limit_ms)
        result = CrawlResult()
        lemma_index = await self.build_lemma_index(recipe.root_folder)
        seen: Set[str] = set()
        verses_done: Set[Tuple[str, int, int]] = set()
        queue: Deque[QueueItem] = deque([QueueItem(strong=seed, depth=0)])

        logger.info(
            "crawl %s: max_depth=%d max_nodes=%d recipe=%s",
            seed,
            recipe.max_depth,
            recipe.max_nodes,
            recipe.id,
        )

        while queue and len(result.processed) < recipe.max_nodes:
            if cancel is not None and cancel.is_set():
                result.cancelled = True
                logger.info("crawl cancelled with %d item(s) still queued", len(queue))
                break

            item = queue.popleft()
            if item.strong in seen:
                continue
            seen.add(item.strong)
            result.processed.append(item.strong)

            try:
                existing = await self.find_existing(item.strong, recipe)
                if existing and recipe.skip_existing:
                    result.skipped += 1
                    logger.debug("skip %s: already at %s", item.strong, existing)
                    continue
                entry = await self._process(item, recipe, lemma_index, result, verses_done)
            except Exception as exc:
                message = _error_message(exc)
                result.errors.append((item.strong, message))
                logger.warning("%s failed: %s", item.strong, message)
                continue

            if item.depth < recipe.max_depth:
                for strong in self.next_nodes(entry, recipe.follow_edges):
                    if strong not in seen:
                        logger.debug("enqueue %s at depth %d", strong, item.depth + 1)
                        queue.append(QueueItem(strong=strong, depth=item.depth + 1))

        logger.info(
            "crawl %s done: created=%d updated=%d skipped=%d errors=%d",
            seed,
            result.created,
            result.updated,
            result.skipped,
            len(result.errors),
        )
        return result

    async def _process(
        self,
        item: QueueItem,
        recipe: Recipe,
        lemma_index: LemmaIndex,
        result: CrawlResult,
        verses_done: Set[Tuple[str, int, int]],
    ) -> Entry:
        url = strongs_url(item.strong)
        html = await self.fetcher.get(url, True)
        entry = parse_entry(item.strong, url, html)
        if entry.lemma:
            lemma_index[entry.lemma] = entry.strong

        deferred_alias: Optional[str] = None
        if recipe.link_greek_hebrew:
            entry, deferred_alias = await self.apply_lemma_links(entry, lemma_index, recipe)

        outcome = await self.writer.upsert(entry, recipe)
        if outcome.created:
            result.created += 1
        else:
            result.updated += 1

        if deferred_alias:
            await self.ensure_alias(entry.strong, deferred_alias, recipe)

        if "scripture" in recipe.link_types and entry.links.scripture:
            related = [f"[[{strong}]]" for strong in dict.fromkeys([entry.strong, *entry.links.related_ids])]
            for ref in entry.links.scripture:
                if ref.key in verses_done:
                    continue
                await ensure_scripture_note(self.store, self.fetcher, recipe.scripture_root_folder, ref, related)
                verses_done.add(ref.key)
        return entry

    def next_nodes(self, entry: Entry, follow_edges: Iterable[str]) -> List[str]:
        """Union of edge targets across the followed edge types, first occurrence wins."""

        out: List[str] = []
        for edge_type in EDGE_TYPES:
            if edge_type not in follow_edges:
                continue
            out.extend(entry.links.edge(edge_type))
        return list(dict.fromkeys(out))

    async def build_lemma_index(self, root_folder: str) -> LemmaIndex:
        index: LemmaIndex = {}
        for path in await self.store.list(root_folder):
            try:
                text = await self.store.read(path)
            except WriteError as exc:
                logger.warning("lemma index: skipping %s: %s", path, exc)
                continue
            strong = normalize_strong_id(header_value(text, K_STRONG) or "")
            lemma = header_value(text, K_LEMMA)
            if strong and lemma:
                index[lemma] = strong
        logger.debug("lemma index: %d term(s) under %s", len(index), root_folder)
        return index

    async def find_existing(self, strong: str, recipe: Recipe) -> Optional[str]:
        """First document under the root folder whose file name carries ``strong`` as a token."""

        pattern = _id_in_name_re(strong)
        for path in await self.store.list(recipe.root_folder):
            name = path.rsplit("/", 1)[-1][: -len(".md")]
            if pattern.search(name):
                return path
        return None

    async def apply_lemma_links(
        self, entry: Entry, lemma_index: LemmaIndex, recipe: Recipe
    ) -> Tuple[Entry, Optional[str]]:
        """Link known lemmas in the entry's sections and record aliases on their documents.

        Returns the rewritten entry and the entry's own alias, which the
        caller applies once the entry's document has been written.
        """

        blocks = dict(entry.blocks)
        found: List[str] = []
        for token in extract_script_tokens("\n".join(blocks.values())):
            target = lemma_index.get(token)
            if not target:
                continue
            found.append(token)
            link = f"[[{target}|{token}]]"
            blocks = {key: replace_token_with_link(value, token, link) if value else value for key, value in blocks.items()}

        deferred: Optional[str] = None
        if recipe.lemma_alias_mode == "all":
            for token in found:
                target = lemma_index[token]
                if target == entry.strong:
                    deferred = token
                else:
                    await self.ensure_alias(target, token, recipe)
        elif entry.lemma:
            deferred = entry.lemma

        return replace(entry, blocks=blocks), deferred

    async def ensure_alias(self, strong: str, term: str, recipe: Recipe) -> None:
        """Record ``term`` as an alias of ``strong``'s document, creating a placeholder if needed."""

        existing = await self.find_existing(strong, recipe)
        if existing is None:
            await self.writer.ensure_folder(join_path(recipe.root_folder))
            path = join_path(recipe.root_folder, f"{strong}.md")
            await self.store.create(path, render_placeholder(strong, term))
            logger.info("created placeholder %s for alias %s", path, term)
            return

        text = await self.store.read(existing)
        updated = add_alias_to_header(text, term, strong)
        if updated != text:
            await self.store.modify(existing, updated)
            logger.debug("added alias %s to %s", term, existing)


__all__ = ["Crawler", "extract_script_tokens", "replace_token_with_link"]

"""Data models for the Strong's lexicon crawl."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

# Canonical section order; documents render sections in this order.
SECTION_KEYS: Tuple[str, ...] = (
    "lexical_summary",
    "strongs_definition",
    "helps",
    "thayers",
    "forms_transliterations",
    "englishmans_concordance",
    "concordance",
    "topical_lexicon",
)

SECTION_TITLES: Dict[str, str] = {
    "lexical_summary": "Lexical Summary",
    "strongs_definition": "Strong's Definition",
    "helps": "HELPS Word-studies",
    "thayers": "Thayer's Lexicon",
    "forms_transliterations": "Forms & Transliterations",
    "englishmans_concordance": "Englishman's Concordance",
    "concordance": "Concordance",
    "topical_lexicon": "Topical Lexicon",
}

EDGE_TYPES: Tuple[str, ...] = ("see_also", "related_ids", "topical")
LINK_TYPES: Tuple[str, ...] = ("strongs", "scripture")
ALIAS_MODES: Tuple[str, ...] = ("primary", "all")


# =============================================================================
# Errors
# =============================================================================

class StrongsGraphError(Exception):
    """Base class for crawl errors."""


class FetchError(StrongsGraphError):
    """Raised when a remote document cannot be retrieved."""

    def __init__(self, url: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class WriteError(StrongsGraphError):
    """Raised when the document store cannot read, create or modify a document."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path


class SeedError(StrongsGraphError, ValueError):
    """Raised when a seed string cannot be normalized into a Strong's id."""

    def __init__(self, raw: str) -> None:
        super().__init__(
            f"Could not parse Strong's ID from {raw!r}. Try G2198, H1623, or a BibleHub Strong's URL."
        )
        self.raw = raw


# =============================================================================
# Entries
# =============================================================================

@dataclass(frozen=True)
class ScriptureRef:
    """A verse reference found on a lexicon page."""

    slug: str  # e.g. "2_corinthians"
    chapter: int
    verse: int
    display: str  # e.g. "2 Corinthians 5:15"
    interlinear_url: str
    nasb_url: str

    @property
    def key(self) -> Tuple[str, int, int]:
        return (self.slug, self.chapter, self.verse)


@dataclass
class Links:
    """Typed edges out of one entry."""

    see_also: List[str] = field(default_factory=list)
    related_ids: List[str] = field(default_factory=list)
    topical: List[str] = field(default_factory=list)
    scripture: List[ScriptureRef] = field(default_factory=list)

    def edge(self, edge_type: str) -> List[str]:
        if edge_type not in EDGE_TYPES:
            raise ValueError(f"Unknown edge type: {edge_type}")
        return list(getattr(self, edge_type))


@dataclass
class Entry:
    """Structured record for one imported lexical item."""

    strong: str  # "G2198" / "H1623"
    lang: str  # "greek" or "hebrew"
    source_primary: str
    lemma: Optional[str] = None
    transliteration: Optional[str] = None
    phonetic: Optional[str] = None
    pronunciation: Optional[str] = None
    part_of_speech: Optional[str] = None
    source_alt: List[str] = field(default_factory=list)
    blocks: Dict[str, str] = field(default_factory=lambda: {key: "" for key in SECTION_KEYS})
    links: Links = field(default_factory=Links)

    def block(self, key: str) -> str:
        return self.blocks.get(key) or ""


# =============================================================================
# Run configuration and bookkeeping
# =============================================================================

@dataclass(frozen=True)
class Recipe:
    """Immutable configuration governing one crawl/render run."""

    id: str
    include_sections: Tuple[str, ...]
    follow_edges: FrozenSet[str]
    link_types: FrozenSet[str]
    link_greek_hebrew: bool
    lemma_alias_mode: str
    max_depth: int
    max_nodes: int
    rate_limit_ms: int
    skip_existing: bool
    root_folder: str
    scripture_root_folder: str
    note_title_pattern: str

    def includes(self, section: str) -> bool:
        return section in self.include_sections

    def ordered_sections(self) -> List[str]:
        return [key for key in SECTION_KEYS if key in self.include_sections]

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["include_sections"] = list(self.include_sections)
        payload["follow_edges"] = sorted(self.follow_edges)
        payload["link_types"] = sorted(self.link_types)
        return payload


@dataclass(frozen=True)
class QueueItem:
    strong: str
    depth: int


@dataclass
class CrawlResult:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)
    processed: List[str] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": [{"id": strong, "error": message} for strong, message in self.errors],
            "processed": list(self.processed),
            "cancelled": self.cancelled,
        }


@dataclass(frozen=True)
class Created:
    """Upsert outcome: a new document was written at ``path``."""

    path: str
    created: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Merged:
    """Upsert outcome: imported sections were merged into the document at ``path``."""

    path: str
    changed: bool = False
    created: bool = field(default=False, init=False)

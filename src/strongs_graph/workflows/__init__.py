"""High-level exports for the crawl workflows."""

from .config import DEFAULT_RECIPE, load_recipe
from .crawler import Crawler
from .extract import parse_entry
from .ids import normalize_seed, normalize_strong_id
from .models import (
    CrawlResult,
    Created,
    Entry,
    FetchError,
    Merged,
    Recipe,
    SeedError,
    StrongsGraphError,
    WriteError,
)
from .store import DocumentStore, FolderStore
from .web_fetch import FetchConfig, Fetcher
from .writer import Writer

__all__ = [
    "DEFAULT_RECIPE",
    "load_recipe",
    "Crawler",
    "parse_entry",
    "normalize_seed",
    "normalize_strong_id",
    "CrawlResult",
    "Created",
    "Entry",
    "FetchError",
    "Merged",
    "Recipe",
    "SeedError",
    "StrongsGraphError",
    "WriteError",
    "DocumentStore",
    "FolderStore",
    "FetchConfig",
    "Fetcher",
    "Writer",
]

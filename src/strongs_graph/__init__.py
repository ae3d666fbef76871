"""Strong's lexicon crawler that builds an interlinked markdown vault from BibleHub."""

__version__ = "0.1.0"

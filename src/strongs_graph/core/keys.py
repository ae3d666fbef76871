"""Shared metadata-header keys to avoid magic strings across the writer and crawler."""

from __future__ import annotations

# Lexicon document header keys
K_TYPE = "type"
K_LANG = "lang"
K_STRONG = "strong"
K_LEMMA = "lemma"
K_TRANSLITERATION = "transliteration"
K_PRONUNCIATION = "pronunciation"
K_PHONETIC = "phonetic"
K_PART_OF_SPEECH = "part_of_speech"
K_ALIASES = "aliases"
K_SOURCE_PRIMARY = "source_primary"
K_SOURCE_ALT = "source_alt"
K_IMPORTED_AT = "imported_at"
K_IMPORT_RECIPE = "import_recipe"
K_SECTIONS_INCLUDED = "sections_included"
K_LINKS_SEE_ALSO = "links_see_also"
K_LINKS_RELATED = "links_related_strongs"
K_LINKS_TOPICAL = "links_topical"
K_LINKS_SCRIPTURE = "links_scripture"
K_CRAWL_DEPTH = "crawl_depth"
K_CRAWL_ROOT = "crawl_root"

# Verse document header keys
K_REFERENCE = "reference"
K_BOOK = "book"
K_CHAPTER = "chapter"
K_VERSE = "verse"
K_SOURCE_NASB = "source_nasb"
K_SOURCE_INTERLINEAR = "source_interlinear"
K_RELATED_STRONGS = "related_strongs"

# Document type values
TYPE_LEXICON = "lexicon/strongs"
TYPE_VERSE = "scripture/verse"

import asyncio
from dataclasses import replace
from datetime import datetime, timezone

from strongs_graph.workflows.config import DEFAULT_RECIPE
from strongs_graph.workflows.ids import make_scripture_ref
from strongs_graph.workflows.models import SECTION_KEYS, Created, Entry, Links, Merged
from strongs_graph.workflows.store import FolderStore
from strongs_graph.workflows.writer import (
    Writer,
    add_alias_to_header,
    header_value,
    linkify_scripture_refs,
    render_placeholder,
    replace_imported_block,
    split_header,
)

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _entry(**blocks) -> Entry:
    base = {key: "" for key in SECTION_KEYS}
    base.update(
        {
            "lexical_summary": "- **Lemma:** ζάω",
            "strongs_definition": "to live",
            "helps": "HELPS Word-studies\nCognate: 2222 /zōḗ. See John 3:16.",
            "thayers": "Thayer's Greek Lexicon\nto live, breathe",
        }
    )
    base.update(blocks)
    return Entry(
        strong="G2198",
        lang="greek",
        source_primary="https://biblehub.com/strongs/greek/2198.htm",
        lemma="ζάω",
        transliteration="zaó",
        pronunciation="dzah-o",
        part_of_speech="verb",
        source_alt=["https://biblehub.com/greek/2198.htm"],
        blocks=base,
        links=Links(
            see_also=["G2227"],
            related_ids=["G2222"],
            scripture=[make_scripture_ref("john", 3, 16)],
        ),
    )


def test_build_title_and_path():
    writer = Writer(FolderStore("."))
    entry = _entry()
    title = writer.build_title(entry, DEFAULT_RECIPE)
    assert title == "G2198 — ζάω (zaó)"
    assert writer.file_path(title, DEFAULT_RECIPE) == "Lexicon/Strongs/G2198 — ζάω (zaó).md"


def test_build_title_missing_fields_and_illegal_characters():
    writer = Writer(FolderStore("."))
    recipe = replace(DEFAULT_RECIPE, note_title_pattern="{{strong}}: {{lemma}}/{{transliteration}}")
    entry = replace(_entry(), lemma=None)
    assert writer.build_title(entry, recipe) == "G2198— —zaó"


def test_render_new_layout():
    writer = Writer(FolderStore("."))
    text = writer.render_new(_entry(), DEFAULT_RECIPE, now=FIXED_NOW)
    header, body = split_header(text)

    assert header_value(text, "type") == "lexicon/strongs"
    assert header_value(text, "strong") == "G2198"
    assert header_value(text, "imported_at") == "2024-05-01"
    assert header_value(text, "import_recipe") == "word-study-web:v1"
    assert '  - "[[G2227]]"' in header
    assert '  - "[[Scripture/John/3-16|John 3:16]]"' in header
    assert "  - concordance" not in header

    assert body.lstrip().startswith("# G2198 — ζάω (zaó)")
    assert "> **Part of Speech:** verb" in body
    for key in DEFAULT_RECIPE.ordered_sections():
        assert f"<!-- imported: {key} -->" in body
    assert "<!-- imported: concordance -->" not in body
    assert body.index("<!-- imported: lexical_summary -->") < body.index("<!-- imported: helps -->")
    assert "See [[Scripture/John/3-16|John 3:16]]." in body
    assert "## Outbound Links" in body


def test_upsert_creates_then_merge_is_idempotent(tmp_path):
    store = FolderStore(tmp_path)
    writer = Writer(store)
    entry = _entry()

    async def run():
        first = await writer.upsert(entry, DEFAULT_RECIPE)
        path = first.path
        before = await store.read(path)
        second = await writer.upsert(entry, DEFAULT_RECIPE)
        after = await store.read(path)
        return first, second, before, after

    first, second, before, after = asyncio.run(run())
    assert isinstance(first, Created) and first.created
    assert isinstance(second, Merged) and not second.created
    assert second.changed is False
    assert before == after


def test_merge_replaces_only_marked_span():
    writer = Writer(FolderStore("."))
    original = writer.render_new(_entry(), DEFAULT_RECIPE, now=FIXED_NOW)
    marker = "<!-- imported: helps -->"
    # Human notes before the first marker and after the helps section's rule.
    head, rest = original.split("## Lexical Summary", 1)
    edited = head + "My notes up top.\n\n## Lexical Summary" + rest
    rule_at = edited.index("---\n", edited.index(marker))
    edited = edited[: rule_at + 4] + "\nA human paragraph.\n" + edited[rule_at + 4 :]

    merged = writer.merge_text(edited, _entry(helps="HELPS Word-studies\nrevised"), DEFAULT_RECIPE)

    start = edited.index(marker) + len(marker)
    end = edited.index("---\n", start)
    assert merged[:start] == edited[:start]
    assert merged[start:].startswith("\nHELPS Word-studies\nrevised\n\n---\n\nA human paragraph.\n")
    assert merged.endswith(edited[end:])


def test_merge_never_touches_header():
    writer = Writer(FolderStore("."))
    original = writer.render_new(_entry(), DEFAULT_RECIPE, now=FIXED_NOW)
    changed = replace(_entry(), lemma="other", part_of_speech="noun")

    merged = writer.merge_text(original, changed, DEFAULT_RECIPE)
    assert split_header(merged)[0] == split_header(original)[0]


def test_missing_marker_is_noop():
    doc = "---\nstrong: G1\n---\n\n# G1\n\nplain notes\n"
    assert replace_imported_block(doc, "helps", "new text") == doc


def test_replace_runs_to_end_of_document_without_boundary():
    doc = "intro\n<!-- imported: helps -->\nold text"
    assert replace_imported_block(doc, "helps", "  new  ") == "intro\n<!-- imported: helps -->\nnew\n\n"


def test_block_lines_that_look_like_boundaries_stay_idempotent(tmp_path):
    store = FolderStore(tmp_path)
    writer = Writer(store)
    entry = _entry(thayers="Thayer's Greek Lexicon\n---\n# not a heading\nend")

    async def run():
        created = await writer.upsert(entry, DEFAULT_RECIPE)
        before = await store.read(created.path)
        merged = await writer.upsert(entry, DEFAULT_RECIPE)
        return before, await store.read(created.path), merged

    before, after, merged = asyncio.run(run())
    assert before == after
    assert merged.changed is False


def test_add_alias_to_header():
    doc = "---\ntype: lexicon/strongs\nstrong: G5\naliases:\n  - G5\n---\n\n# G5\n"
    updated = add_alias_to_header(doc, "λόγος", "G5")
    assert "aliases:\n  - G5\n  - λόγος\n---" in updated
    assert add_alias_to_header(updated, "λόγος", "G5") == updated


def test_add_alias_creates_list_and_ignores_headerless_docs():
    doc = "---\nstrong: G5\n---\nbody\n"
    assert add_alias_to_header(doc, "λόγος", "G5") == "---\nstrong: G5\naliases:\n  - G5\n  - λόγος\n---\nbody\n"
    assert add_alias_to_header("no header", "λόγος", "G5") == "no header"


def test_render_placeholder():
    text = render_placeholder("G5", "λόγος")
    assert text == "---\ntype: lexicon/strongs\nstrong: G5\nlemma: λόγος\naliases:\n  - G5\n  - λόγος\n---\n\n# G5\n"


def test_add_alias_rewrites_inline_list():
    doc = "---\nstrong: G5\naliases: [G5, \"logos\"]\nlemma: λόγος\n---\nbody\n"
    updated = add_alias_to_header(doc, "λόγος", "G5")
    assert updated == "---\nstrong: G5\naliases:\n  - G5\n  - logos\n  - λόγος\nlemma: λόγος\n---\nbody\n"
    assert updated.count("aliases:") == 1
    assert add_alias_to_header("---\naliases: [λόγος]\n---\n", "λόγος", "G5") == "---\naliases: [λόγος]\n---\n"


def test_add_alias_fills_empty_inline_list():
    doc = "---\nstrong: G5\naliases: []\n---\n"
    assert add_alias_to_header(doc, "λόγος", "G5") == "---\nstrong: G5\naliases:\n  - G5\n  - λόγος\n---\n"


def test_linkify_skips_numbered_book_prefix():
    ref = make_scripture_ref("john", 3, 16)
    text = "Compare 1 John 3:16 with John 3:16."
    assert linkify_scripture_refs(text, [ref], "Scripture") == (
        "Compare 1 John 3:16 with [[Scripture/John/3-16|John 3:16]]."
    )

from __future__ import annotations

import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .workflows.config import fetch_config_from_env, load_recipe
from .workflows.crawler import Crawler
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.ids import normalize_seed
from .workflows.models import CrawlResult, Recipe
from .workflows.store import FolderStore
from .workflows.web_fetch import Fetcher

app = typer.Typer(add_help_option=False, no_args_is_help=False)

LOG_LEVEL_ENV = "STRONGS_GRAPH_LOG_LEVEL"
_LANGS = ("greek", "hebrew")


def _minimal_help() -> str:
    return """strongs-graph (BibleHub Strong's crawler)

Usage:
  strongs-graph crawl <seed> [--lang greek|hebrew] [--vault <DIR>] [--recipe <FILE>] [--json] [--soft-fail]
  strongs-graph normalize <seed> [--lang greek|hebrew]
  strongs-graph doctor [--vault <DIR>]

Seeds:
  G2198, H1623, a bare number with --lang, or a biblehub.com Strong's URL.

Discoverability:
  --help-full     Expanded help + env vars + exit codes.
  --find <query>  Search commands, flags, env vars.
"""


def _help_full() -> str:
    return """strongs-graph crawl CLI

Commands:
  crawl       Import a Strong's entry and everything reachable within the limits.
  normalize   Print the normalized Strong's id for a seed.
  doctor      Print environment and dependency diagnostics.

Crawl options:
  --vault <DIR>          Vault directory documents are written under (default: cwd).
  --recipe <FILE>        JSON recipe (snake_case or camelCase keys).
  --max-depth N          Override the recipe's depth limit.
  --max-nodes N          Override the recipe's node limit.
  --rate-limit-ms N      Minimum interval between network fetches.
  --no-skip-existing     Merge into existing documents instead of skipping them.
  --json                 Print the crawl result as JSON.
  --soft-fail            Exit 0 even if some nodes failed.
  --verbose              Debug logging.

Env vars:
  STRONGS_GRAPH_RECIPE
  STRONGS_GRAPH_MAX_DEPTH
  STRONGS_GRAPH_MAX_NODES
  STRONGS_GRAPH_RATE_LIMIT_MS
  STRONGS_GRAPH_SKIP_EXISTING
  STRONGS_GRAPH_ROOT_FOLDER
  STRONGS_GRAPH_SCRIPTURE_ROOT_FOLDER
  STRONGS_GRAPH_LOG_LEVEL

Exit codes:
  0  success (or --soft-fail)
  1  one or more nodes failed
  2  bad seed or recipe
  3  fatal error
"""


_FIND_INDEX = [
    ("command", "crawl", "Import an entry and crawl its typed edges."),
    ("command", "normalize", "Print the normalized Strong's id."),
    ("command", "doctor", "Print environment and dependency diagnostics."),
    ("flag", "--lang", "Language for bare-number seeds: greek or hebrew."),
    ("flag", "--vault", "Vault directory documents are written under."),
    ("flag", "--recipe", "JSON recipe file."),
    ("flag", "--max-depth", "Override the depth limit."),
    ("flag", "--max-nodes", "Override the node limit."),
    ("flag", "--rate-limit-ms", "Minimum interval between fetches."),
    ("flag", "--no-skip-existing", "Merge into existing documents."),
    ("flag", "--json", "Print the crawl result as JSON."),
    ("flag", "--soft-fail", "Exit 0 even if some nodes failed."),
    ("env", "STRONGS_GRAPH_RECIPE", "Default recipe file."),
    ("env", "STRONGS_GRAPH_MAX_DEPTH", "Depth limit override."),
    ("env", "STRONGS_GRAPH_MAX_NODES", "Node limit override."),
    ("env", "STRONGS_GRAPH_RATE_LIMIT_MS", "Rate limit override."),
    ("env", "STRONGS_GRAPH_SKIP_EXISTING", "Skip-existing override."),
    ("env", "STRONGS_GRAPH_ROOT_FOLDER", "Lexicon folder override."),
    ("env", "STRONGS_GRAPH_SCRIPTURE_ROOT_FOLDER", "Verse folder override."),
    ("env", "STRONGS_GRAPH_LOG_LEVEL", "Logging level."),
]


def _run_find(query: str) -> str:
    needle = (query or "").strip().lower()
    if not needle:
        return ""
    lines = []
    for category, name, desc in _FIND_INDEX:
        haystack = f"{category} {name} {desc}".lower()
        if needle in haystack:
            lines.append(f"{category} {name} - {desc}")
    return "\n".join(lines)


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _check_lang(lang: str) -> str:
    value = (lang or "").strip().lower()
    if value not in _LANGS:
        raise typer.BadParameter(f"--lang must be one of: {', '.join(_LANGS)}")
    return value


async def _run_crawl(strong: str, recipe: Recipe, vault: Path) -> CrawlResult:
    store = FolderStore(vault)
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    handled = False
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
        handled = True
    except (NotImplementedError, RuntimeError):
        pass
    try:
        async with Fetcher(fetch_config_from_env(recipe.rate_limit_ms)) as fetcher:
            return await Crawler(store, fetcher).run(strong, recipe, cancel=cancel)
    finally:
        if handled:
            loop.remove_signal_handler(signal.SIGINT)


def _format_result(strong: str, result: CrawlResult) -> str:
    lines = [
        f"Crawl from {strong}: created {result.created}, updated {result.updated}, "
        f"skipped {result.skipped}, errors {len(result.errors)}"
    ]
    if result.cancelled:
        lines.append("Cancelled before the queue was exhausted.")
    for failed, message in result.errors:
        lines.append(f"- {failed}: {message}")
    return "\n".join(lines)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    help: bool = typer.Option(False, "--help", "-h", is_eager=True, help="Show minimal help."),
    help_full: bool = typer.Option(False, "--help-full", is_eager=True, help="Show expanded help."),
    find: Optional[str] = typer.Option(None, "--find", is_eager=True, help="Search commands, flags, env vars."),
) -> None:
    if help_full:
        typer.echo(_help_full())
        raise typer.Exit(code=0)
    if find is not None:
        output = _run_find(find)
        if output:
            typer.echo(output)
        raise typer.Exit(code=0)
    if help or ctx.invoked_subcommand is None:
        typer.echo(_minimal_help())
        raise typer.Exit(code=0)


@app.command("doctor", add_help_option=True)
def doctor_cmd(
    vault: Optional[Path] = typer.Option(None, "--vault", help="Vault directory to check."),
    recipe: Optional[Path] = typer.Option(None, "--recipe", help="Recipe file to validate."),
) -> None:
    """Print environment and dependency diagnostics."""
    report = build_doctor_report(vault=vault, recipe_path=recipe)
    typer.echo(format_doctor_report(report))
    raise typer.Exit(code=0 if report.get("ok", True) else 2)


@app.command("normalize", add_help_option=True)
def normalize_cmd(
    seed: str = typer.Argument(..., help="Strong's id, bare number or BibleHub URL."),
    lang: str = typer.Option("greek", "--lang", help="Language for bare numbers: greek or hebrew."),
) -> None:
    """Print the normalized Strong's id for a seed."""
    try:
        strong = normalize_seed(seed, _check_lang(lang))
    except ValueError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    typer.echo(strong)


@app.command("crawl", add_help_option=True)
def crawl_cmd(
    seed: str = typer.Argument(..., help="Strong's id, bare number or BibleHub URL."),
    lang: str = typer.Option("greek", "--lang", help="Language for bare numbers: greek or hebrew."),
    vault: Path = typer.Option(Path("."), "--vault", help="Vault directory documents are written under."),
    recipe: Optional[Path] = typer.Option(None, "--recipe", help="JSON recipe file."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", help="Override the depth limit."),
    max_nodes: Optional[int] = typer.Option(None, "--max-nodes", help="Override the node limit."),
    rate_limit_ms: Optional[int] = typer.Option(None, "--rate-limit-ms", help="Minimum interval between fetches."),
    no_skip_existing: bool = typer.Option(False, "--no-skip-existing", help="Merge into existing documents."),
    json_out: bool = typer.Option(False, "--json", help="Print the crawl result as JSON."),
    soft_fail: bool = typer.Option(False, "--soft-fail", help="Exit 0 even if some nodes failed."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Import an entry and crawl its typed edges."""
    _configure_logging(verbose)
    overrides: Dict[str, Any] = {
        "max_depth": max_depth,
        "max_nodes": max_nodes,
        "rate_limit_ms": rate_limit_ms,
        "skip_existing": False if no_skip_existing else None,
    }
    try:
        strong = normalize_seed(seed, _check_lang(lang))
        resolved = load_recipe(recipe, overrides=overrides)
    except ValueError as exc:
        if not json_out:
            typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)

    try:
        result = asyncio.run(_run_crawl(strong, resolved, vault))
    except Exception as exc:
        if not json_out:
            typer.echo(f"fatal: {exc}", err=True)
        raise typer.Exit(code=3)

    if json_out:
        payload = {"seed": strong, "recipe": resolved.id, **result.to_dict()}
        sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
    else:
        typer.echo(_format_result(strong, result))
    raise typer.Exit(code=1 if result.errors and not soft_fail else 0)

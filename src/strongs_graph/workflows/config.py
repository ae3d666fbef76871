"""Recipe defaults and loading.

Resolution order: built-in defaults, then an optional JSON recipe file, then
``STRONGS_GRAPH_*`` environment variables, then explicit overrides (CLI
flags). The resolved :class:`Recipe` is validated before it is returned.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from dotenv import load_dotenv

from .models import ALIAS_MODES, EDGE_TYPES, LINK_TYPES, SECTION_KEYS, Recipe
from .web_fetch import FetchConfig

load_dotenv()

logger = logging.getLogger(__name__)

ENV_PREFIX = "STRONGS_GRAPH_"
RECIPE_ENV = "STRONGS_GRAPH_RECIPE"

DEFAULT_ROOT_FOLDER = "Lexicon/Strongs"
DEFAULT_SCRIPTURE_ROOT_FOLDER = "Scripture"
DEFAULT_TITLE_PATTERN = "{{strong}} — {{lemma}} ({{transliteration}})"

DEFAULT_RECIPE = Recipe(
    id="word-study-web:v1",
    include_sections=tuple(key for key in SECTION_KEYS if key != "concordance"),
    follow_edges=frozenset({"see_also", "related_ids"}),
    link_types=frozenset({"strongs", "scripture"}),
    link_greek_hebrew=True,
    lemma_alias_mode="primary",
    max_depth=2,
    max_nodes=100,
    rate_limit_ms=1000,
    skip_existing=True,
    root_folder=DEFAULT_ROOT_FOLDER,
    scripture_root_folder=DEFAULT_SCRIPTURE_ROOT_FOLDER,
    note_title_pattern=DEFAULT_TITLE_PATTERN,
)

# Older recipe files name the related edge after the link list it fills.
_EDGE_ALIASES = {"related_strongs": "related_ids"}
_RECIPE_FIELDS = set(DEFAULT_RECIPE.to_dict())
_FALSE_STRINGS = {"", "0", "false", "no", "off"}


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    try:
        raw = os.getenv(name, "")
        return int(raw) if raw.strip() else default
    except (TypeError, ValueError):
        logger.warning("ignoring non-integer %s=%r", name, os.getenv(name))
        return default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return _as_bool(raw)


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in data.items():
        name = _snake(key)
        if name not in _RECIPE_FIELDS:
            raise ValueError(f"Unknown recipe key: {key}")
        out[name] = value
    return out


def env_overrides() -> Dict[str, Any]:
    """Recipe fields set through ``STRONGS_GRAPH_*`` variables."""

    found: Dict[str, Any] = {}
    for field_name in ("max_depth", "max_nodes", "rate_limit_ms"):
        value = _env_int(ENV_PREFIX + field_name.upper())
        if value is not None:
            found[field_name] = value
    skip = _env_bool(ENV_PREFIX + "SKIP_EXISTING")
    if skip is not None:
        found["skip_existing"] = skip
    for field_name in ("root_folder", "scripture_root_folder"):
        value = os.getenv(ENV_PREFIX + field_name.upper())
        if value and value.strip():
            found[field_name] = value.strip()
    return found


def _as_list(value: Any, field_name: str) -> list:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Iterable):
        return list(value)
    raise ValueError(f"{field_name} must be a list")


def validate_recipe(recipe: Recipe) -> Recipe:
    unknown_sections = sorted(set(recipe.include_sections) - set(SECTION_KEYS))
    if unknown_sections:
        raise ValueError(f"Unknown section key(s): {', '.join(unknown_sections)}")
    unknown_edges = sorted(set(recipe.follow_edges) - set(EDGE_TYPES))
    if unknown_edges:
        raise ValueError(f"Unknown edge type(s): {', '.join(unknown_edges)}")
    unknown_links = sorted(set(recipe.link_types) - set(LINK_TYPES))
    if unknown_links:
        raise ValueError(f"Unknown link type(s): {', '.join(unknown_links)}")
    if recipe.lemma_alias_mode not in ALIAS_MODES:
        raise ValueError(f"lemma_alias_mode must be one of {', '.join(ALIAS_MODES)}")
    if recipe.max_depth < 0:
        raise ValueError("max_depth must be >= 0")
    if recipe.max_nodes < 1:
        raise ValueError("max_nodes must be >= 1")
    if recipe.rate_limit_ms < 0:
        raise ValueError("rate_limit_ms must be >= 0")
    if not recipe.root_folder.strip("/ "):
        raise ValueError("root_folder must not be empty")
    return recipe


def build_recipe(values: Mapping[str, Any]) -> Recipe:
    """Recipe from a full field mapping, coercing collection and scalar types."""

    edges = [_EDGE_ALIASES.get(_snake(edge), _snake(edge)) for edge in _as_list(values["follow_edges"], "follow_edges")]
    recipe = Recipe(
        id=str(values["id"]),
        include_sections=tuple(dict.fromkeys(_as_list(values["include_sections"], "include_sections"))),
        follow_edges=frozenset(edges),
        link_types=frozenset(_as_list(values["link_types"], "link_types")),
        link_greek_hebrew=_as_bool(values["link_greek_hebrew"]),
        lemma_alias_mode=str(values["lemma_alias_mode"]),
        max_depth=int(values["max_depth"]),
        max_nodes=int(values["max_nodes"]),
        rate_limit_ms=int(values["rate_limit_ms"]),
        skip_existing=_as_bool(values["skip_existing"]),
        root_folder=str(values["root_folder"]),
        scripture_root_folder=str(values["scripture_root_folder"]),
        note_title_pattern=str(values["note_title_pattern"]),
    )
    return validate_recipe(recipe)


def load_recipe(path: Optional[Path] = None, overrides: Optional[Mapping[str, Any]] = None) -> Recipe:
    """Resolve the recipe for one run.

    ``path`` defaults to ``$STRONGS_GRAPH_RECIPE`` when set. ``None`` values in
    ``overrides`` are ignored so unset CLI flags fall through.
    """

    values: Dict[str, Any] = DEFAULT_RECIPE.to_dict()

    recipe_path = path or (Path(os.environ[RECIPE_ENV]) if os.getenv(RECIPE_ENV) else None)
    if recipe_path is not None:
        try:
            data = json.loads(Path(recipe_path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise ValueError(f"Cannot read recipe file {recipe_path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Recipe file {recipe_path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"Recipe file {recipe_path} must contain a JSON object")
        values.update(_normalize_keys(data))
        logger.debug("loaded recipe file %s", recipe_path)

    values.update(env_overrides())
    if overrides:
        values.update({key: value for key, value in _normalize_keys(overrides).items() if value is not None})

    return build_recipe(values)


def fetch_config_from_env(rate_limit_ms: Optional[int] = None) -> FetchConfig:
    config = FetchConfig()
    if rate_limit_ms is not None:
        config.rate_limit_ms = rate_limit_ms
    timeout = _env_int(ENV_PREFIX + "TIMEOUT")
    if timeout is not None and timeout > 0:
        config.timeout = float(timeout)
    attempts = _env_int(ENV_PREFIX + "MAX_ATTEMPTS")
    if attempts is not None and attempts > 0:
        config.max_attempts = attempts
    user_agent = os.getenv(ENV_PREFIX + "USER_AGENT")
    if user_agent and user_agent.strip():
        config.user_agent = user_agent.strip()
    return config


__all__ = [
    "DEFAULT_RECIPE",
    "RECIPE_ENV",
    "env_overrides",
    "validate_recipe",
    "build_recipe",
    "load_recipe",
    "fetch_config_from_env",
]

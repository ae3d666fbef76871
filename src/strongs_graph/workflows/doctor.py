from __future__ import annotations

import importlib.util
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import RECIPE_ENV, load_recipe


def _check_writable(path: Path) -> bool:
    try:
        if path.exists():
            return os.access(path, os.W_OK)
        parent = path.parent
        if not parent.exists():
            return False
        return os.access(parent, os.W_OK)
    except OSError:
        return False


def _module_available(name: str) -> bool:
    return importlib.util.find_spec(name) is not None


def build_doctor_report(*, vault: Optional[Path] = None, recipe_path: Optional[Path] = None) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "generated_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "ok": True,
        "checks": [],
    }

    def add_check(
        name: str,
        status: bool,
        *,
        detail: Optional[str] = None,
        remedy: Optional[str] = None,
        level: str = "warn",
    ) -> None:
        entry = {
            "name": name,
            "status": "ok" if status else "missing",
            "level": level,
            "detail": detail,
        }
        if remedy:
            entry["remedy"] = remedy
        report["checks"].append(entry)
        if not status and level == "warn":
            report["ok"] = False

    vault_dir = Path(vault) if vault is not None else Path.cwd()
    add_check(
        "vault",
        _check_writable(vault_dir),
        detail=str(vault_dir),
        remedy="Pass --vault pointing at a writable directory.",
        level="warn",
    )

    lxml_ok = _module_available("lxml")
    add_check(
        "lxml",
        lxml_ok,
        detail="lxml parser available" if lxml_ok else "falling back to html.parser",
        remedy="pip install lxml",
        level="info",
    )

    recipe_file = recipe_path or (Path(os.environ[RECIPE_ENV]) if os.getenv(RECIPE_ENV) else None)
    if recipe_file is None:
        add_check("recipe", True, detail="built-in defaults", level="info")
    elif not Path(recipe_file).exists():
        add_check(
            "recipe",
            False,
            detail=str(recipe_file),
            remedy=f"Create the recipe file or unset {RECIPE_ENV}.",
            level="warn",
        )
    else:
        try:
            recipe = load_recipe(Path(recipe_file))
        except ValueError as exc:
            add_check("recipe", False, detail=str(exc), remedy="Fix the recipe file.", level="warn")
        else:
            add_check("recipe", True, detail=f"{recipe_file} ({recipe.id})", level="info")

    return report


def format_doctor_report(report: Dict[str, Any]) -> str:
    lines: List[str] = []
    lines.append("strongs-graph doctor")
    lines.append(f"Generated: {report.get('generated_at')}")
    lines.append("")
    for check in report.get("checks", []):
        name = check.get("name", "check")
        status = check.get("status", "unknown")
        level = check.get("level", "info")
        lines.append(f"- [{level}] {name}: {status}")
        detail = check.get("detail")
        if detail:
            lines.append(f"  detail: {detail}")
        remedy = check.get("remedy")
        if remedy and status != "ok":
            lines.append(f"  remedy: {remedy}")
    return "\n".join(lines).rstrip() + "\n"


__all__ = ["build_doctor_report", "format_doctor_report"]

"""Document store interface and a folder-backed implementation.

Paths are vault-relative POSIX strings (``Lexicon/Strongs/G2198.md``).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Protocol

from .ids import normalize_folder
from .models import WriteError

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    async def exists(self, path: str) -> bool: ...

    async def read(self, path: str) -> str: ...

    async def create(self, path: str, text: str) -> None: ...

    async def modify(self, path: str, text: str) -> None: ...

    async def create_folder(self, path: str) -> None: ...

    async def list(self, prefix: str) -> List[str]: ...


class FolderStore:
    """Markdown vault rooted at a local directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        rel = normalize_folder(path)
        target = (self.root / rel).resolve()
        root = self.root.resolve()
        if target != root and root not in target.parents:
            raise WriteError(path, f"Path escapes vault root: {path}")
        return target

    async def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    async def read(self, path: str) -> str:
        target = self._resolve(path)
        try:
            return target.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise WriteError(path, f"Could not decode {path} as UTF-8: {exc}") from exc
        except OSError as exc:
            raise WriteError(path, f"Could not read {path}: {exc}") from exc

    async def create(self, path: str, text: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("x", encoding="utf-8") as fh:
                fh.write(text)
        except FileExistsError as exc:
            raise WriteError(path, f"Document already exists: {path}") from exc
        except OSError as exc:
            raise WriteError(path, f"Could not create {path}: {exc}") from exc
        logger.debug("created %s", path)

    async def modify(self, path: str, text: str) -> None:
        target = self._resolve(path)
        if not target.exists():
            raise WriteError(path, f"Document does not exist: {path}")
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise WriteError(path, f"Could not modify {path}: {exc}") from exc
        logger.debug("modified %s", path)

    async def create_folder(self, path: str) -> None:
        try:
            self._resolve(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteError(path, f"Could not create folder {path}: {exc}") from exc

    async def list(self, prefix: str) -> List[str]:
        """Markdown documents whose vault path starts with ``prefix``."""

        folder = normalize_folder(prefix)
        base = self.root / folder if folder else self.root
        if not base.exists():
            return []
        paths = []
        for file_path in sorted(base.rglob("*.md")):
            rel = file_path.relative_to(self.root).as_posix()
            if not folder or rel.startswith(folder + "/"):
                paths.append(rel)
        return paths


__all__ = ["DocumentStore", "FolderStore"]

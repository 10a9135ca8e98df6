"""Editor-state collaborators.

The aggregator reads editor state through the EditorState protocol. This
module also provides Workspace, a filesystem-backed implementation that
tracks an active document, a cursor and an ordered set of open documents,
for hosts (and the CLI) that have no editor of their own.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from ctxpack.core.console import get_logger
from ctxpack.core.events import ChangeNotifier, ContextChange, ContextChangeKind
from ctxpack.core.models import CursorPosition, FileFragment
from ctxpack.core.result import WorkspaceError

logger = get_logger(__name__)

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    "ts": "typescript",
    "tsx": "typescriptreact",
    "js": "javascript",
    "jsx": "javascriptreact",
    "py": "python",
    "java": "java",
    "go": "go",
    "rs": "rust",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "rb": "ruby",
    "php": "php",
    "swift": "swift",
    "kt": "kotlin",
    "scala": "scala",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "md": "markdown",
    "sql": "sql",
    "sh": "shellscript",
    "bash": "shellscript",
}


def detect_language(path: str | Path) -> str:
    """Map a file extension to a language tag, ``plaintext`` when unknown."""
    suffix = Path(path).suffix.lower().lstrip(".")
    return LANGUAGE_BY_EXTENSION.get(suffix, "plaintext")


class EditorState(Protocol):
    async def active_document(self) -> FileFragment | None:
        ...

    async def visible_documents(self) -> Sequence[FileFragment]:
        ...

    async def workspace_root(self) -> str | None:
        ...


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Skipping unreadable document %s: %s", path, exc)
        return None


class Workspace:
    """Filesystem-backed editor state.

    Documents are read from disk on every request, so each gather sees the
    current content. Unreadable documents are left out of the results.
    """

    def __init__(
        self,
        root: Path | None = None,
        *,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        if root is not None:
            root = root.expanduser().resolve()
            if not root.is_dir():
                raise WorkspaceError("Workspace root is not a directory", context={"root": root})
        self.root = root
        self.notifier = notifier
        self._active: Path | None = None
        self._cursor: CursorPosition | None = None
        self._open: list[Path] = []

    def _resolve(self, path: Path) -> Path:
        if not path.is_absolute() and self.root is not None:
            path = self.root / path
        return path.expanduser().resolve()

    @property
    def active_path(self) -> Path | None:
        return self._active

    @property
    def open_paths(self) -> tuple[Path, ...]:
        return tuple(self._open)

    def open(self, path: Path) -> Path:
        """Open ``path`` (appended after the already open documents)."""
        resolved = self._resolve(path)
        if resolved not in self._open:
            self._open.append(resolved)
        return resolved

    def close(self, path: Path) -> None:
        resolved = self._resolve(path)
        if resolved in self._open:
            self._open.remove(resolved)
        if resolved == self._active:
            self._active = None
            self._cursor = None
            self._publish(ContextChangeKind.ACTIVE_DOCUMENT_CHANGED, resolved)

    def activate(self, path: Path, cursor: CursorPosition | None = None) -> None:
        """Make ``path`` the active document, opening it if needed."""
        resolved = self.open(path)
        changed = resolved != self._active
        self._active = resolved
        self._cursor = cursor
        if changed:
            self._publish(ContextChangeKind.ACTIVE_DOCUMENT_CHANGED, resolved)
        elif cursor is not None:
            self._publish(ContextChangeKind.SELECTION_CHANGED, resolved)

    def _publish(self, kind: ContextChangeKind, path: Path) -> None:
        if self.notifier is not None:
            self.notifier.publish(ContextChange(kind=kind, paths=(str(path),)))

    async def _fragment(self, path: Path, cursor: CursorPosition | None = None) -> FileFragment | None:
        content = await asyncio.to_thread(_read_text, path)
        if content is None:
            return None
        return FileFragment(
            path=str(path),
            content=content,
            language=detect_language(path),
            cursor=cursor,
        )

    async def active_document(self) -> FileFragment | None:
        if self._active is None:
            return None
        return await self._fragment(self._active, self._cursor)

    async def visible_documents(self) -> Sequence[FileFragment]:
        fragments = await asyncio.gather(*(self._fragment(path) for path in self._open))
        return [fragment for fragment in fragments if fragment is not None]

    async def workspace_root(self) -> str | None:
        return str(self.root) if self.root is not None else None


__all__ = [
    "LANGUAGE_BY_EXTENSION",
    "EditorState",
    "Workspace",
    "detect_language",
]

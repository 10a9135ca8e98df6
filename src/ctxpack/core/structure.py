"""Project structure scanning.

Produces a flat, capped list of source files under a workspace root:
    - DirectoryLister: the listing collaborator the scanner recurses with
    - LocalDirectoryLister: os.scandir-backed lister run in a worker thread
    - ProjectScanner: depth-first walk with directory and extension filters

Traversal order is depth-first, directories-then-files per level: at each
level every non-excluded subdirectory is walked (in listing order) before
that level's own matching files are appended. Scanning stops once the cap
is reached, so the result is always the first files in that order.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ctxpack.core.config import DEFAULT_EXCLUDED_DIRS, DEFAULT_SOURCE_EXTENSIONS
from ctxpack.core.console import get_logger
from ctxpack.core.models import MAX_SOURCE_FILES, ProjectSummary
from ctxpack.core.result import Err, Ok, Result, ScanError

logger = get_logger(__name__)


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    is_directory: bool
    location: str


class DirectoryLister(Protocol):
    async def list(self, location: str) -> Sequence[DirectoryEntry]:
        """Return the direct children of ``location``; raise on I/O failure."""
        ...


def _list_sync(location: str) -> list[DirectoryEntry]:
    entries: list[DirectoryEntry] = []
    with os.scandir(location) as it:
        for entry in it:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False
            entries.append(DirectoryEntry(name=entry.name, is_directory=is_dir, location=entry.path))
    return sorted(entries, key=lambda e: e.name)


class LocalDirectoryLister:
    """Lists local directories, sorted by name. Symlinked directories are not followed."""

    async def list(self, location: str) -> Sequence[DirectoryEntry]:
        return await asyncio.to_thread(_list_sync, location)


def _extension(name: str) -> str:
    _, dot, ext = name.rpartition(".")
    return ext.lower() if dot else ""


class ProjectScanner:
    def __init__(
        self,
        lister: DirectoryLister | None = None,
        *,
        excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
        source_extensions: Iterable[str] = DEFAULT_SOURCE_EXTENSIONS,
        max_files: int = MAX_SOURCE_FILES,
    ) -> None:
        if not 0 <= max_files <= MAX_SOURCE_FILES:
            raise ValueError(f"max_files must be between 0 and {MAX_SOURCE_FILES}")
        self.lister = lister or LocalDirectoryLister()
        self.excluded_dirs = frozenset(excluded_dirs)
        self.source_extensions = frozenset(ext.lower().lstrip(".") for ext in source_extensions)
        self.max_files = max_files

    def is_source_file(self, name: str) -> bool:
        return _extension(name) in self.source_extensions

    async def scan(self, root: str, project_name: str | None = None) -> ProjectSummary:
        """Summarise the source files under ``root``.

        Listing failures are not propagated: the summary is returned with an
        empty file list instead.
        """
        name = project_name or Path(root).name or root
        result = await self.collect(root)
        if result.is_err():
            logger.warning("Project structure unavailable: %s", result.error)
        files: tuple[str, ...] = result.map(tuple).unwrap_or(())
        logger.debug("Scanned %s: %d source files", root, len(files))
        return ProjectSummary(root_path=root, project_name=name, source_files=files)

    async def collect(self, root: str, *, capped: bool = True) -> Result[list[str], ScanError]:
        """Source file locations under ``root`` in traversal order.

        With ``capped=False`` the walk ignores ``max_files`` and returns every
        matching file, using the same directory and extension filters.
        """
        found: list[str] = []
        limit = self.max_files if capped else None
        if limit == 0:
            return Ok(found)
        try:
            await self._walk(root, found, limit)
        except Exception as exc:  # any lister failure yields an empty summary
            return Err(ScanError("Failed to list directory", context={"root": root, "error": exc}))
        return Ok(found)

    async def _walk(self, location: str, found: list[str], limit: int | None) -> None:
        entries = await self.lister.list(location)

        for entry in entries:
            if limit is not None and len(found) >= limit:
                return
            if entry.is_directory and entry.name not in self.excluded_dirs:
                await self._walk(entry.location, found, limit)

        for entry in entries:
            if limit is not None and len(found) >= limit:
                return
            if not entry.is_directory and self.is_source_file(entry.name):
                found.append(entry.location)


__all__ = [
    "DirectoryEntry",
    "DirectoryLister",
    "LocalDirectoryLister",
    "ProjectScanner",
]

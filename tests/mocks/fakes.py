"""Deterministic collaborators for aggregator and scanner tests.

StaticEditor satisfies the EditorState protocol with fixed documents and can
simulate slow or failing sources. TreeLister satisfies DirectoryLister over an
in-memory directory tree.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

from ctxpack.core.models import FileFragment
from ctxpack.core.structure import DirectoryEntry


class StaticEditor:
    def __init__(
        self,
        active: FileFragment | None = None,
        visible: Sequence[FileFragment] = (),
        root: str | None = None,
        *,
        delay: float = 0.0,
        fail: set[str] | None = None,
    ) -> None:
        self.active = active
        self.visible = list(visible)
        self.root = root
        self.delay = delay
        self.fail = fail or set()
        self.calls: list[str] = []

    async def _step(self, name: str) -> None:
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if name in self.fail:
            raise RuntimeError(f"{name} unavailable")

    async def active_document(self) -> FileFragment | None:
        await self._step("active")
        return self.active

    async def visible_documents(self) -> Sequence[FileFragment]:
        await self._step("visible")
        return list(self.visible)

    async def workspace_root(self) -> str | None:
        await self._step("root")
        return self.root


class TreeLister:
    """Lists an in-memory tree given as {directory: [child names]}.

    Child names ending in "/" are directories. Locations are joined with "/".
    """

    def __init__(self, tree: Mapping[str, Sequence[str]], fail_on: set[str] | None = None) -> None:
        self.tree = tree
        self.fail_on = fail_on or set()
        self.listed: list[str] = []

    async def list(self, location: str) -> Sequence[DirectoryEntry]:
        self.listed.append(location)
        if location in self.fail_on:
            raise PermissionError(f"cannot list {location}")
        entries: list[DirectoryEntry] = []
        for child in self.tree.get(location, []):
            is_dir = child.endswith("/")
            name = child.rstrip("/")
            entries.append(DirectoryEntry(name=name, is_directory=is_dir, location=f"{location}/{name}"))
        return entries

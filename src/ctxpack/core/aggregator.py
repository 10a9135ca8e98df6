"""Context gathering for AI requests.

Fans out to the four context sources concurrently:
    - the active document
    - other open documents (cut to a fixed line cap at fetch time)
    - recent edits (snapshot of the edit history)
    - project structure (only when requested)

After the join the package is checked against the token budget and handed
to the budget allocator when it does not fit. A failing source contributes
its empty value; gather() itself does not raise in normal operation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from ctxpack.core.budget import BudgetAllocator, estimate_context_tokens
from ctxpack.core.config import ContextConfig
from ctxpack.core.console import get_logger
from ctxpack.core.editor import EditorState
from ctxpack.core.events import ChangeHandler, ChangeNotifier, ContextChange, Subscription
from ctxpack.core.history import EditHistory
from ctxpack.core.models import (
    ContextOptions,
    ContextPackage,
    EditRecord,
    FileFragment,
    ProjectSummary,
)
from ctxpack.core.structure import ProjectScanner

logger = get_logger(__name__)

T = TypeVar("T")

LINE_CAP_MARKER = "..."


def cap_lines(content: str, max_lines: int) -> str:
    """Keep the first ``max_lines`` lines, marking the cut with a ``...`` line."""
    lines = content.split("\n")
    if len(lines) <= max_lines:
        return content
    return "\n".join(lines[:max_lines]) + "\n" + LINE_CAP_MARKER


async def _resolved(value: T) -> T:
    return value


class ContextAggregator:
    """Assembles context packages from editor state, edit history and project structure."""

    def __init__(
        self,
        editor: EditorState,
        history: EditHistory | None = None,
        scanner: ProjectScanner | None = None,
        *,
        config: ContextConfig | None = None,
        allocator: BudgetAllocator | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        self.config = config or ContextConfig()
        self.editor = editor
        self.history = history or EditHistory(capacity=self.config.history_capacity)
        self.scanner = scanner or ProjectScanner(
            excluded_dirs=self.config.excluded_dirs,
            source_extensions=self.config.source_extensions,
            max_files=self.config.max_source_files,
        )
        self.allocator = allocator or BudgetAllocator()
        self.changes = notifier or ChangeNotifier()

    async def gather(self, options: ContextOptions | None = None) -> ContextPackage:
        opts = options or ContextOptions()
        max_tokens = (
            opts.max_tokens if opts.max_tokens is not None else self.config.default_max_tokens
        )

        empty_files: tuple[FileFragment, ...] = ()
        empty_edits: tuple[EditRecord, ...] = ()
        current, open_files, edits, structure = await asyncio.gather(
            self._guarded("current file", self.current_file(), None),
            self._guarded("open files", self.open_files(), empty_files)
            if opts.include_open_files
            else _resolved(empty_files),
            self._guarded("recent edits", self.recent_edits(), empty_edits)
            if opts.include_recent_edits
            else _resolved(empty_edits),
            self._guarded("project structure", self.project_structure(), None)
            if opts.include_project_structure
            else _resolved(None),
        )

        current_path = current.path if current is not None else None
        package = ContextPackage(
            current_file=current,
            other_open_files=tuple(f for f in open_files if f.path != current_path),
            recent_edits=edits,
            project_summary=structure,
        )

        estimated = estimate_context_tokens(package)
        if estimated <= max_tokens:
            logger.debug("Context fits budget: %d <= %d tokens", estimated, max_tokens)
            return package

        logger.debug("Context over budget (%d > %d tokens); prioritizing", estimated, max_tokens)
        return self.allocator.prioritize(package, max_tokens)

    async def _guarded(self, label: str, fetch: Awaitable[T], fallback: T) -> T:
        try:
            return await fetch
        except Exception as exc:
            logger.warning("Context source '%s' failed: %s", label, exc)
            return fallback

    async def current_file(self) -> FileFragment | None:
        return await self.editor.active_document()

    async def open_files(self) -> tuple[FileFragment, ...]:
        documents = await self.editor.visible_documents()
        line_cap = self.config.open_file_line_cap
        return tuple(
            doc.model_copy(update={"content": cap_lines(doc.content, line_cap)}) for doc in documents
        )

    async def recent_edits(self) -> tuple[EditRecord, ...]:
        return self.history.recent()

    async def project_structure(self) -> ProjectSummary | None:
        root = await self.editor.workspace_root()
        if root is None:
            return None
        return await self.scanner.scan(root)

    def update_context(self, change: ContextChange) -> None:
        """Publish ``change`` to everyone watching this aggregator."""
        self.changes.publish(change)

    def on_context_changed(self, handler: ChangeHandler) -> Subscription:
        return self.changes.subscribe(handler)

    def estimate_context_tokens(self, package: ContextPackage) -> int:
        return estimate_context_tokens(package)

    def prioritize_context(self, package: ContextPackage, max_tokens: int) -> ContextPackage:
        return self.allocator.prioritize(package, max_tokens)


__all__ = ["LINE_CAP_MARKER", "ContextAggregator", "cap_lines"]

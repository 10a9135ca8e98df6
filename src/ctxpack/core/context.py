"""Context gathering and token management re-exports.

This module provides a unified interface for the context core:
    - Context gathering from editor state, edit history and project structure
    - Token estimation, truncation and budget allocation
    - Change notification
"""

from __future__ import annotations

from ctxpack.core.aggregator import ContextAggregator, cap_lines
from ctxpack.core.budget import (
    AllocationReport,
    BudgetAllocator,
    estimate_context_tokens,
    prioritize_context,
)
from ctxpack.core.editor import EditorState, Workspace, detect_language
from ctxpack.core.events import ChangeNotifier, ContextChange, ContextChangeKind, Subscription
from ctxpack.core.history import EditHistory
from ctxpack.core.models import (
    ContextOptions,
    ContextPackage,
    CursorPosition,
    EditRecord,
    FileFragment,
    ProjectSummary,
)
from ctxpack.core.structure import DirectoryEntry, DirectoryLister, LocalDirectoryLister, ProjectScanner
from ctxpack.core.tokens import (
    TRUNCATION_MARKER,
    estimate_tokens,
    estimate_tokens_batch,
    truncate_batch_to_budget,
    truncate_to_token_budget,
)

__all__ = [
    "TRUNCATION_MARKER",
    "AllocationReport",
    "BudgetAllocator",
    "ChangeNotifier",
    "ContextAggregator",
    "ContextChange",
    "ContextChangeKind",
    "ContextOptions",
    "ContextPackage",
    "CursorPosition",
    "DirectoryEntry",
    "DirectoryLister",
    "EditHistory",
    "EditRecord",
    "EditorState",
    "FileFragment",
    "LocalDirectoryLister",
    "ProjectScanner",
    "ProjectSummary",
    "Subscription",
    "Workspace",
    "cap_lines",
    "detect_language",
    "estimate_context_tokens",
    "estimate_tokens",
    "estimate_tokens_batch",
    "prioritize_context",
    "truncate_batch_to_budget",
    "truncate_to_token_budget",
]

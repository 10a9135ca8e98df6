"""Priority-tiered token budget allocation for context packages.

Tiers, highest priority first:
    1. current file: up to half of the budget, truncated when larger
    2. other open files: whole files, in caller order, until 80% is used
    3. recent edits: newest first, only if under 90% used, up to the full budget

The project summary is never trimmed here. The shares are fixed policy so a
caller can reason about the worst-case composition without running the
allocator, and the current file is never starved by a flood of open files.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction

from ctxpack.core.console import get_logger
from ctxpack.core.models import ContextPackage, EditRecord, FileFragment
from ctxpack.core.tokens import estimate_tokens, truncate_to_token_budget

logger = get_logger(__name__)

CURRENT_FILE_SHARE = Fraction(1, 2)
OPEN_FILES_CEILING = Fraction(4, 5)
RECENT_EDITS_GATE = Fraction(9, 10)


def estimate_context_tokens(package: ContextPackage) -> int:
    """Estimated cost of a package; the project summary is not counted."""
    total = 0
    if package.current_file is not None:
        total += estimate_tokens(package.current_file.content)
    total += sum(estimate_tokens(f.content) for f in package.other_open_files)
    total += sum(estimate_tokens(e.description) for e in package.recent_edits)
    return total


@dataclass(frozen=True)
class AllocationReport:
    """What one ``prioritize`` call charged and dropped, per tier."""

    max_tokens: int
    current_file_tokens: Fraction
    open_files_tokens: int
    recent_edits_tokens: int
    current_file_truncated: bool
    open_files_dropped: int
    recent_edits_dropped: int

    @property
    def used_tokens(self) -> Fraction:
        return self.current_file_tokens + self.open_files_tokens + self.recent_edits_tokens


class BudgetAllocator:
    """Fits a context package into a token budget using fixed priority tiers."""

    def prioritize(self, package: ContextPackage, max_tokens: int) -> ContextPackage:
        prioritized, _ = self.prioritize_with_report(package, max_tokens)
        return prioritized

    def prioritize_with_report(
        self, package: ContextPackage, max_tokens: int
    ) -> tuple[ContextPackage, AllocationReport]:
        current, current_charge, truncated = self._allocate_current_file(
            package.current_file, max_tokens
        )
        used = current_charge

        open_files, open_cost = self._allocate_open_files(package.other_open_files, used, max_tokens)
        used += open_cost

        edits: tuple[EditRecord, ...] = ()
        edit_cost = 0
        if used < RECENT_EDITS_GATE * max_tokens:
            edits, edit_cost = self._allocate_recent_edits(package.recent_edits, used, max_tokens)
            used += edit_cost

        report = AllocationReport(
            max_tokens=max_tokens,
            current_file_tokens=current_charge,
            open_files_tokens=open_cost,
            recent_edits_tokens=edit_cost,
            current_file_truncated=truncated,
            open_files_dropped=len(package.other_open_files) - len(open_files),
            recent_edits_dropped=len(package.recent_edits) - len(edits),
        )
        logger.debug(
            "Allocated %s of %d tokens (current=%s, open=%d/%d, edits=%d/%d, truncated=%s)",
            report.used_tokens,
            max_tokens,
            current_charge,
            len(open_files),
            len(package.other_open_files),
            len(edits),
            len(package.recent_edits),
            truncated,
        )

        prioritized = ContextPackage(
            current_file=current,
            other_open_files=open_files,
            recent_edits=edits,
            project_summary=package.project_summary,
        )
        return prioritized, report

    def _allocate_current_file(
        self, current: FileFragment | None, max_tokens: int
    ) -> tuple[FileFragment | None, Fraction, bool]:
        if current is None:
            return None, Fraction(0), False

        reserve = CURRENT_FILE_SHARE * max_tokens
        cost = estimate_tokens(current.content)
        if cost <= reserve:
            return current, Fraction(cost), False

        # The whole reserve is charged, not the post-truncation cost. Dense code
        # can estimate above the reserve after truncation; the charge still
        # stays at the reserve.
        content = truncate_to_token_budget(current.content, int(reserve))
        return current.model_copy(update={"content": content}), reserve, True

    def _allocate_open_files(
        self, candidates: tuple[FileFragment, ...], used: Fraction, max_tokens: int
    ) -> tuple[tuple[FileFragment, ...], int]:
        ceiling = OPEN_FILES_CEILING * max_tokens
        accepted: list[FileFragment] = []
        spent = 0
        for fragment in candidates:
            cost = estimate_tokens(fragment.content)
            if used + spent + cost > ceiling:
                break
            accepted.append(fragment)
            spent += cost
        return tuple(accepted), spent

    def _allocate_recent_edits(
        self, candidates: tuple[EditRecord, ...], used: Fraction, max_tokens: int
    ) -> tuple[tuple[EditRecord, ...], int]:
        accepted: list[EditRecord] = []
        spent = 0
        for edit in candidates:
            cost = estimate_tokens(edit.description)
            if used + spent + cost > max_tokens:
                break
            accepted.append(edit)
            spent += cost
        return tuple(accepted), spent


_DEFAULT_ALLOCATOR = BudgetAllocator()


def prioritize_context(package: ContextPackage, max_tokens: int) -> ContextPackage:
    return _DEFAULT_ALLOCATOR.prioritize(package, max_tokens)


__all__ = [
    "CURRENT_FILE_SHARE",
    "OPEN_FILES_CEILING",
    "RECENT_EDITS_GATE",
    "AllocationReport",
    "BudgetAllocator",
    "estimate_context_tokens",
    "prioritize_context",
]

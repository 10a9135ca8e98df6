"""Token cost estimation and budget-aware truncation.

This module provides:
- estimate_tokens / estimate_tokens_batch: character-based cost heuristic
  with a correction for syntax-dense (code-like) text
- truncate_to_token_budget / truncate_batch_to_budget: shorten text to a
  token budget, preferring to cut at a line boundary
- calculate_token_budget: per-section usage report for a request

Counts are estimates, not a tokenizer. All arithmetic is done on integers so
that identical input always yields identical costs.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

CHARS_PER_TOKEN = 4
TRUNCATION_MARKER = "... [truncated]"

# Substrings counted as syntax markers. Keywords are matched anywhere in the
# text, not on word boundaries.
CODE_MARKERS: tuple[str, ...] = (
    "{",
    "}",
    "(",
    ")",
    ";",
    "=>",
    "function",
    "const",
    "let",
    "var",
    "import",
    "export",
    "class",
)

# (markers per 100 chars strictly above, multiplier in percent), highest first
_DENSITY_TIERS: tuple[tuple[int, int], ...] = ((5, 130), (2, 115))

# Keep 90% of the nominal character allowance to absorb estimator error.
_SAFETY_NUMERATOR, _SAFETY_DENOMINATOR = 9, 10
# A line-boundary cut is used when it keeps at least 80% of the allowance.
_BOUNDARY_NUMERATOR, _BOUNDARY_DENOMINATOR = 4, 5

_HARD_CUT_SUFFIX = "\n" + TRUNCATION_MARKER
_LINE_CUT_SUFFIX = "\n\n" + TRUNCATION_MARKER


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def count_code_markers(text: str) -> int:
    """Count occurrences of every syntax marker in ``text``."""
    return sum(text.count(marker) for marker in CODE_MARKERS)


def code_density_percent(text: str) -> int:
    """Return the cost multiplier for ``text`` as a percentage (100, 115 or 130)."""
    length = len(text)
    if length == 0:
        return 100
    markers = count_code_markers(text)
    # density = markers / (length / 100), compared without division
    for threshold, percent in _DENSITY_TIERS:
        if markers * 100 > threshold * length:
            return percent
    return 100


def estimate_tokens(text: str | None) -> int:
    """Estimate the token cost of ``text``.

    Baseline is one token per four characters, rounded up, scaled by 1.15 or
    1.30 for syntax-dense text and rounded up again.
    """
    if not text:
        return 0
    base = _ceil_div(len(text), CHARS_PER_TOKEN)
    return _ceil_div(base * code_density_percent(text), 100)


def estimate_tokens_batch(texts: Sequence[str | None]) -> int:
    return sum(estimate_tokens(text) for text in texts)


def fits_in_budget(text: str | None, max_tokens: int) -> bool:
    return estimate_tokens(text) <= max_tokens


def chars_for_tokens(max_tokens: int) -> int:
    """Characters kept for ``max_tokens``, including the 10% safety margin."""
    if max_tokens <= 0:
        return 0
    return max_tokens * CHARS_PER_TOKEN * _SAFETY_NUMERATOR // _SAFETY_DENOMINATOR


def _is_truncated_within(text: str, chars_to_keep: int) -> bool:
    return text.endswith(_HARD_CUT_SUFFIX) and len(text) - len(_HARD_CUT_SUFFIX) <= chars_to_keep


def truncate_to_token_budget(text: str, max_tokens: int) -> str:
    """Shorten ``text`` so its estimated cost stays within ``max_tokens``.

    Text that already fits is returned unchanged. Otherwise a prefix of
    ``floor(max_tokens * 4 * 0.9)`` characters is kept, cut back to the last
    line break when that break lies within the final 20% of the prefix, and
    a truncation marker is appended.

    Text that already ends in the truncation marker with a body no longer
    than the character allowance is returned as is, even when its estimate
    is over budget. That keeps repeated truncation stable, and it applies to
    any caller text that happens to end the same way.
    """
    if estimate_tokens(text) <= max_tokens:
        return text
    if max_tokens <= 0:
        return ""

    chars_to_keep = chars_for_tokens(max_tokens)
    if chars_to_keep >= len(text):
        return text
    if _is_truncated_within(text, chars_to_keep):
        return text

    prefix = text[:chars_to_keep]
    last_newline = prefix.rfind("\n")
    if last_newline >= 0 and (
        last_newline * _BOUNDARY_DENOMINATOR >= chars_to_keep * _BOUNDARY_NUMERATOR
    ):
        return prefix[:last_newline] + _LINE_CUT_SUFFIX
    return prefix + _HARD_CUT_SUFFIX


def truncate_batch_to_budget(texts: Sequence[str], max_tokens: int) -> list[str]:
    """Truncate ``texts`` against one shared budget, earlier items first.

    Each item receives whatever budget the previous items left; once the
    budget is spent every remaining item becomes an empty string.
    """
    result: list[str] = []
    remaining = max_tokens

    for text in texts:
        if remaining <= 0:
            result.append("")
            continue
        truncated = truncate_to_token_budget(text, remaining)
        result.append(truncated)
        remaining -= estimate_tokens(truncated)

    return result


def split_into_chunks(text: str, max_tokens_per_chunk: int) -> list[str]:
    """Split ``text`` on line breaks into chunks that each fit the budget.

    A single line that alone exceeds the budget becomes its own chunk.
    """
    chunks: list[str] = []
    current = ""

    for line in text.split("\n"):
        candidate = f"{current}\n{line}" if current else line
        if estimate_tokens(candidate) > max_tokens_per_chunk:
            if current:
                chunks.append(current)
            current = line
        else:
            current = candidate

    if current:
        chunks.append(current)
    return chunks


def format_token_count(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}k"
    return str(count)


@dataclass(frozen=True)
class TokenBudgetBreakdown:
    """Per-section token usage for one request.

    ``remaining_tokens`` is what is left after reserving 20% of the total
    for the response and a further 10% of the rest for the prompt template.
    It can be negative when the sections already overflow.
    """

    total_budget: int
    used_tokens: int
    remaining_tokens: int
    current_file: int
    open_files: int
    recent_edits: int
    project_structure: int
    buffer: int


def calculate_token_budget(
    current_file_content: str,
    open_files_content: Sequence[str],
    recent_edits_content: Sequence[str],
    project_structure_content: str,
    total_budget: int,
) -> TokenBudgetBreakdown:
    available = total_budget * 4 // 5
    buffer = available // 10

    current_tokens = estimate_tokens(current_file_content)
    open_tokens = estimate_tokens_batch(open_files_content)
    edit_tokens = estimate_tokens_batch(recent_edits_content)
    structure_tokens = estimate_tokens(project_structure_content)
    used = current_tokens + open_tokens + edit_tokens + structure_tokens

    return TokenBudgetBreakdown(
        total_budget=total_budget,
        used_tokens=used,
        remaining_tokens=available - used - buffer,
        current_file=current_tokens,
        open_files=open_tokens,
        recent_edits=edit_tokens,
        project_structure=structure_tokens,
        buffer=buffer,
    )


__all__ = [
    "CHARS_PER_TOKEN",
    "CODE_MARKERS",
    "TRUNCATION_MARKER",
    "TokenBudgetBreakdown",
    "calculate_token_budget",
    "chars_for_tokens",
    "code_density_percent",
    "count_code_markers",
    "estimate_tokens",
    "estimate_tokens_batch",
    "fits_in_budget",
    "format_token_count",
    "split_into_chunks",
    "truncate_batch_to_budget",
    "truncate_to_token_budget",
]

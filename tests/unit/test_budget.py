from __future__ import annotations

from fractions import Fraction

from ctxpack.core.budget import BudgetAllocator, estimate_context_tokens, prioritize_context
from ctxpack.core.models import ContextPackage, EditRecord, FileFragment, ProjectSummary
from ctxpack.core.tokens import TRUNCATION_MARKER, estimate_tokens


def _file(name: str, chars: int, fill: str = "a") -> FileFragment:
    return FileFragment(path=f"/ws/{name}", content=fill * chars)


def _edit(n: int, chars: int) -> EditRecord:
    return EditRecord(file_path=f"/ws/e{n}.py", description="x" * chars, timestamp_ms=n)


def test_empty_package_stays_empty() -> None:
    result = prioritize_context(ContextPackage(), 4000)
    assert result.is_empty()


def test_estimate_ignores_project_summary() -> None:
    summary = ProjectSummary(root_path="/ws", project_name="ws", source_files=("/ws/a.py",))
    package = ContextPackage(
        current_file=_file("a.py", 400),
        other_open_files=(_file("b.py", 40),),
        recent_edits=(_edit(1, 8),),
        project_summary=summary,
    )
    assert estimate_context_tokens(package) == 100 + 10 + 2


def test_small_open_files_all_fit() -> None:
    opens = tuple(_file(f"o{i}.py", 2000) for i in range(3))
    package = ContextPackage(current_file=_file("cur.py", 800, "b"), other_open_files=opens)

    result = prioritize_context(package, 4000)

    assert result.current_file == package.current_file
    assert result.other_open_files == opens


def test_large_current_file_is_truncated_to_half_budget() -> None:
    code = "const x = foo(bar);\n" * 500
    package = ContextPackage(current_file=FileFragment(path="/ws/big.ts", content=code))
    assert estimate_tokens(code) == 3250

    result, report = BudgetAllocator().prioritize_with_report(package, 4000)

    assert result.current_file is not None
    content = result.current_file.content
    assert content.endswith(TRUNCATION_MARKER)
    assert 5760 <= len(content) <= 7200 + len("\n\n" + TRUNCATION_MARKER)
    assert report.current_file_truncated
    assert report.current_file_tokens == 2000


def test_truncated_current_file_charges_whole_reserve() -> None:
    package = ContextPackage(
        current_file=_file("cur.py", 4000),  # 1000 tokens
        other_open_files=(_file("o.py", 1600),),  # 400 tokens
    )
    # reserve 500; charged 500 even though the truncated text costs less
    result, report = BudgetAllocator().prioritize_with_report(package, 1000)

    assert report.current_file_tokens == 500
    # 500 + 400 > 800, so the open file does not fit
    assert result.other_open_files == ()
    assert report.open_files_dropped == 1


def test_odd_budget_keeps_half_reserve() -> None:
    package = ContextPackage(current_file=_file("cur.py", 4000))
    _, report = BudgetAllocator().prioritize_with_report(package, 7)
    assert report.current_file_tokens == Fraction(7, 2)


def test_current_file_within_reserve_is_unchanged() -> None:
    current = _file("cur.py", 2000)  # 500 tokens, exactly half
    result = prioritize_context(ContextPackage(current_file=current), 1000)
    assert result.current_file == current


def test_open_files_stop_at_first_overflow() -> None:
    package = ContextPackage(
        current_file=_file("cur.py", 400),  # 100
        other_open_files=(
            _file("o1.py", 1200),  # 300
            _file("o2.py", 1200),  # 300
            _file("o3.py", 1200),  # 300, would reach 1000 > 800
            _file("o4.py", 200),  # 50, would fit but is not considered
        ),
    )
    result = prioritize_context(package, 1000)
    assert [f.path for f in result.other_open_files] == ["/ws/o1.py", "/ws/o2.py"]


def test_open_files_may_reach_exactly_eighty_percent() -> None:
    package = ContextPackage(
        current_file=_file("cur.py", 2000),  # 500
        other_open_files=(_file("o1.py", 1200),),  # 300, total 800
    )
    result = prioritize_context(package, 1000)
    assert len(result.other_open_files) == 1


def test_recent_edits_fill_to_full_budget() -> None:
    package = ContextPackage(
        current_file=_file("cur.py", 400),  # 100
        other_open_files=(_file("o1.py", 1200), _file("o2.py", 1200)),  # 600
        recent_edits=tuple(_edit(n, 400) for n in range(4)),  # 100 each
    )
    result, report = BudgetAllocator().prioritize_with_report(package, 1000)

    assert len(result.recent_edits) == 3
    assert report.recent_edits_dropped == 1
    assert report.used_tokens == 1000


def test_zero_budget_empties_everything_but_structure() -> None:
    summary = ProjectSummary(root_path="/ws", project_name="ws")
    package = ContextPackage(
        current_file=_file("cur.py", 40),
        other_open_files=(_file("o.py", 40),),
        recent_edits=(_edit(1, 4),),
        project_summary=summary,
    )
    result = prioritize_context(package, 0)

    assert result.current_file is not None
    assert result.current_file.content == ""
    assert result.other_open_files == ()
    assert result.recent_edits == ()
    assert result.project_summary == summary


def test_project_summary_passes_through() -> None:
    summary = ProjectSummary(
        root_path="/ws", project_name="ws", source_files=tuple(f"/ws/{i}.py" for i in range(50))
    )
    package = ContextPackage(current_file=_file("cur.py", 40_000), project_summary=summary)
    assert prioritize_context(package, 100).project_summary is summary


def test_result_fits_when_current_file_fits_reserve() -> None:
    package = ContextPackage(
        current_file=_file("cur.py", 1000),
        other_open_files=tuple(_file(f"o{i}.py", 700) for i in range(6)),
        recent_edits=tuple(_edit(n, 90) for n in range(10)),
    )
    result = prioritize_context(package, 1200)
    assert estimate_context_tokens(result) <= 1200


def test_dense_current_file_may_exceed_reserve_after_truncation() -> None:
    code = "f(){};\n" * 1000
    package = ContextPackage(current_file=FileFragment(path="/ws/dense.js", content=code))

    result, report = BudgetAllocator().prioritize_with_report(package, 1000)

    assert result.current_file is not None
    assert report.current_file_truncated
    assert report.current_file_tokens == 500
    assert estimate_tokens(result.current_file.content) == 591

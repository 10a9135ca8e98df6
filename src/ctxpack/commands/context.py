"""Context packaging commands.

Drives the context core against a local directory:
    - gather: build a budgeted context package from files on disk
    - scan: list the project structure summary
    - estimate: show estimated token costs for files
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ctxpack.core.aggregator import ContextAggregator
from ctxpack.core.budget import estimate_context_tokens
from ctxpack.core.config import ContextConfig
from ctxpack.core.console import console
from ctxpack.core.editor import Workspace
from ctxpack.core.history import EditHistory
from ctxpack.core.models import ContextOptions, ContextPackage, CursorPosition, EditRecord
from ctxpack.core.result import WorkspaceError
from ctxpack.core.structure import ProjectScanner
from ctxpack.core.tokens import (
    calculate_token_budget,
    code_density_percent,
    estimate_tokens,
    format_token_count,
)

if TYPE_CHECKING:
    from ctxpack.main import AppState


def _context_config(ctx: typer.Context) -> ContextConfig:
    state: AppState | None = ctx.obj
    return state.config.context if state is not None else ContextConfig()


def _scanner(config: ContextConfig) -> ProjectScanner:
    return ProjectScanner(
        excluded_dirs=config.excluded_dirs,
        source_extensions=config.source_extensions,
        max_files=config.max_source_files,
    )


async def _recent_files(root: Path, config: ContextConfig, limit: int) -> list[tuple[Path, float]]:
    """Most recently modified source files under ``root``, newest first.

    Uses the project scanner's uncapped walk, so the same directories and
    extensions count as source files here as in the project summary.
    """
    result = await _scanner(config).collect(str(root), capped=False)
    entries: list[tuple[Path, float]] = []
    for location in result.unwrap_or([]):
        path = Path(location)
        try:
            entries.append((path, path.stat().st_mtime))
        except OSError:
            continue
    entries.sort(key=lambda item: item[1], reverse=True)
    return entries[:limit]


def _seed_history(history: EditHistory, root: Path, config: ContextConfig, limit: int) -> None:
    # Oldest first so the newest save ends up at the front.
    for path, mtime in reversed(asyncio.run(_recent_files(root, config, limit))):
        history.record(
            EditRecord(
                file_path=str(path.resolve()),
                description=f"File saved: {path.relative_to(root)}",
                timestamp_ms=int(mtime * 1000),
            )
        )


def _render_package(package: ContextPackage, max_tokens: int) -> None:
    table = Table(title="Context package", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Tier", style="cyan", no_wrap=True)
    table.add_column("Item", overflow="fold")
    table.add_column("Language")
    table.add_column("Tokens", justify="right")

    if package.current_file is not None:
        current = package.current_file
        table.add_row("current", current.path, current.language, str(estimate_tokens(current.content)))
    for fragment in package.other_open_files:
        table.add_row("open", fragment.path, fragment.language, str(estimate_tokens(fragment.content)))
    for edit in package.recent_edits:
        table.add_row("edit", edit.description, "", str(estimate_tokens(edit.description)))

    console.print(table)

    summary_lines = [
        f"Estimated tokens: {format_token_count(estimate_context_tokens(package))}"
        f" / {format_token_count(max_tokens)}",
    ]
    if package.project_summary is not None:
        summary = package.project_summary
        summary_lines.append(
            f"Project: {summary.project_name} ({len(summary.source_files)} source files)"
        )
    console.print(Panel("\n".join(summary_lines), title="Budget", box=box.SIMPLE))


def gather(
    ctx: typer.Context,
    root: Path = typer.Argument(Path("."), help="Workspace root."),
    current: Path | None = typer.Option(None, "--current", help="Active document."),
    line: int = typer.Option(0, "--line", min=0, help="Cursor line in the active document."),
    column: int = typer.Option(0, "--column", min=0, help="Cursor column in the active document."),
    open_files: list[Path] | None = typer.Option(None, "--open", help="Other open documents, most relevant first."),
    max_tokens: int | None = typer.Option(None, "--max-tokens", "-t", min=0, help="Token budget."),
    recent: int = typer.Option(0, "--recent", min=0, help="Seed recent edits from the N newest files."),
    project: bool = typer.Option(False, "--project/--no-project", help="Include project structure."),
    include_open: bool = typer.Option(True, "--open-files/--no-open-files", help="Include open documents."),
    include_edits: bool = typer.Option(True, "--edits/--no-edits", help="Include recent edits."),
    as_json: bool = typer.Option(False, "--json", help="Emit the package as JSON."),
) -> None:
    """Gather a budgeted context package from files on disk."""
    config = _context_config(ctx)
    try:
        workspace = Workspace(root)
    except WorkspaceError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)

    for path in open_files or []:
        workspace.open(path)
    if current is not None:
        workspace.activate(current, CursorPosition(line=line, column=column))

    history = EditHistory(capacity=config.history_capacity)
    if recent:
        _seed_history(history, workspace.root or root, config, min(recent, config.history_capacity))

    aggregator = ContextAggregator(workspace, history, _scanner(config), config=config)
    options = ContextOptions(
        max_tokens=max_tokens,
        include_open_files=include_open,
        include_recent_edits=include_edits,
        include_project_structure=project,
    )
    package = asyncio.run(aggregator.gather(options))

    if as_json:
        typer.echo(package.model_dump_json(indent=2))
        return
    _render_package(package, max_tokens if max_tokens is not None else config.default_max_tokens)


def scan(
    ctx: typer.Context,
    root: Path = typer.Argument(Path("."), help="Project root to scan."),
    as_json: bool = typer.Option(False, "--json", help="Emit the summary as JSON."),
) -> None:
    """List the source files a project summary would include."""
    config = _context_config(ctx)
    resolved = root.expanduser().resolve()
    summary = asyncio.run(_scanner(config).scan(str(resolved)))

    if as_json:
        typer.echo(summary.model_dump_json(indent=2))
        return

    table = Table(title=f"{summary.project_name}", box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("File", overflow="fold")
    for index, path in enumerate(summary.source_files, start=1):
        try:
            shown = str(Path(path).relative_to(resolved))
        except ValueError:
            shown = path
        table.add_row(str(index), shown)
    console.print(table)
    console.print(f"[green]{len(summary.source_files)} source files[/green]")


def estimate(
    files: list[Path] = typer.Argument(..., help="Files to estimate; the first is treated as current."),
    budget: int | None = typer.Option(None, "--budget", "-b", min=0, help="Show a budget breakdown."),
) -> None:
    """Show estimated token costs for files."""
    contents: list[str] = []
    table = Table(title="Token estimates", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("File", overflow="fold")
    table.add_column("Chars", justify="right")
    table.add_column("Density", justify="right")
    table.add_column("Tokens", justify="right")

    for path in files:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            console.print(f"[yellow]Skipping {path}: {escape(str(exc))}[/yellow]")
            continue
        contents.append(text)
        table.add_row(
            str(path),
            str(len(text)),
            f"x{code_density_percent(text) / 100:.2f}",
            str(estimate_tokens(text)),
        )

    console.print(table)
    total = sum(estimate_tokens(text) for text in contents)
    console.print(f"Total: {format_token_count(total)} tokens")

    if budget is not None and contents:
        breakdown = calculate_token_budget(contents[0], contents[1:], [], "", budget)
        lines = [
            f"Budget: {breakdown.total_budget}",
            f"Current file: {breakdown.current_file}",
            f"Open files: {breakdown.open_files}",
            f"Template buffer: {breakdown.buffer}",
            f"Remaining: {breakdown.remaining_tokens}",
        ]
        style = "green" if breakdown.remaining_tokens >= 0 else "red"
        console.print(Panel("\n".join(lines), title="Breakdown", border_style=style))

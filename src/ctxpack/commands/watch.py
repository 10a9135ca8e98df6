from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.markup import escape

from ctxpack.core.config import ContextConfig
from ctxpack.core.console import console, get_logger
from ctxpack.core.events import ChangeNotifier, ContextChange
from ctxpack.core.history import EditHistory
from ctxpack.core.watcher import WorkspaceWatcher

if TYPE_CHECKING:
    from ctxpack.main import AppState

logger = get_logger(__name__)


def watch(
    ctx: typer.Context,
    root: Path = typer.Argument(Path("."), help="Workspace root to watch."),
    duration: float | None = typer.Option(
        None, "--duration", min=0.0, help="Stop after this many seconds (default: until Ctrl-C)."
    ),
) -> None:
    """Print context change events for a workspace as they happen."""
    state: AppState | None = ctx.obj
    config = state.config.context if state is not None else ContextConfig()
    resolved = root.expanduser().resolve()
    if not resolved.is_dir():
        console.print(f"[red]Not a directory:[/red] {resolved}")
        raise typer.Exit(code=1)

    notifier = ChangeNotifier()
    history = EditHistory(capacity=config.history_capacity)

    def _print_change(change: ContextChange) -> None:
        shown = ", ".join(change.paths)
        console.print(f"[cyan]{change.kind.value}[/cyan] {escape(shown)}")

    deadline = time.monotonic() + duration if duration is not None else None
    with notifier.subscribe(_print_change), WorkspaceWatcher(
        resolved, notifier, history, config.excluded_dirs
    ):
        console.print(f"[green]Watching[/green] {resolved} (Ctrl-C to stop)")
        try:
            while deadline is None or time.monotonic() < deadline:
                time.sleep(0.25)
        except KeyboardInterrupt:
            console.print("\n[yellow]Stopped.[/yellow]")

    edits = history.recent()
    if edits:
        console.print(f"{len(edits)} recent edits recorded; newest: {edits[0].file_path}")
    logger.debug("Watcher for %s stopped", resolved)

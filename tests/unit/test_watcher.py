from __future__ import annotations

from pathlib import Path

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from ctxpack.core.events import ChangeNotifier, ContextChange, ContextChangeKind
from ctxpack.core.history import EditHistory
from ctxpack.core.watcher import ContextEventHandler, WorkspaceWatcher


@pytest.fixture
def root(tmp_path: Path) -> Path:
    return tmp_path.resolve()


@pytest.fixture
def seen() -> list[ContextChange]:
    return []


@pytest.fixture
def history() -> EditHistory:
    return EditHistory(clock=lambda: 42)


@pytest.fixture
def handler(root: Path, seen: list[ContextChange], history: EditHistory) -> ContextEventHandler:
    notifier = ChangeNotifier()
    notifier.subscribe(seen.append)
    return ContextEventHandler(root, notifier, history)


def test_modified_file_publishes_and_records_save(
    root: Path, handler: ContextEventHandler, seen: list[ContextChange], history: EditHistory
) -> None:
    path = str(root / "main.py")
    handler.dispatch(FileModifiedEvent(path))

    assert seen == [ContextChange(kind=ContextChangeKind.FILES_CHANGED, paths=(path,))]
    edits = history.recent()
    assert len(edits) == 1
    assert edits[0].file_path == path
    assert edits[0].description == "File saved"
    assert edits[0].timestamp_ms == 42


def test_created_and_deleted_only_publish(
    root: Path, handler: ContextEventHandler, seen: list[ContextChange], history: EditHistory
) -> None:
    handler.dispatch(FileCreatedEvent(str(root / "a.py")))
    handler.dispatch(FileDeletedEvent(str(root / "a.py")))

    assert [c.kind for c in seen] == [ContextChangeKind.FILES_CHANGED] * 2
    assert len(history) == 0


def test_moved_file_reports_both_paths(
    root: Path, handler: ContextEventHandler, seen: list[ContextChange]
) -> None:
    handler.dispatch(FileMovedEvent(str(root / "old.py"), str(root / "new.py")))
    assert seen[0].paths == (str(root / "old.py"), str(root / "new.py"))


def test_directory_events_are_ignored(
    root: Path, handler: ContextEventHandler, seen: list[ContextChange]
) -> None:
    handler.dispatch(DirModifiedEvent(str(root / "src")))
    assert seen == []


def test_excluded_and_outside_paths_are_ignored(
    root: Path, handler: ContextEventHandler, seen: list[ContextChange], history: EditHistory
) -> None:
    handler.dispatch(FileModifiedEvent(str(root / "node_modules" / "pkg" / "index.js")))
    handler.dispatch(FileModifiedEvent(str(root / ".git" / "index")))
    handler.dispatch(FileModifiedEvent("/somewhere/else.py"))
    assert seen == []
    assert len(history) == 0


def test_watcher_start_and_stop(root: Path) -> None:
    watcher = WorkspaceWatcher(root, ChangeNotifier())
    with watcher:
        assert watcher.running
        watcher.start()
    assert not watcher.running
    watcher.stop()

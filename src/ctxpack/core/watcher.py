"""Filesystem watcher feeding the change notifier and edit history.

Bridges watchdog events from a workspace into ctxpack:
    - created/deleted/moved/modified files publish FILES_CHANGED
    - modified files are also recorded as "File saved" edits

Directory events and paths under excluded directories are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from types import TracebackType

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ctxpack.core.config import DEFAULT_EXCLUDED_DIRS
from ctxpack.core.console import get_logger
from ctxpack.core.events import ChangeNotifier, ContextChange, ContextChangeKind
from ctxpack.core.history import EditHistory

logger = get_logger(__name__)


def _as_str(raw: str | bytes) -> str:
    return raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw


class ContextEventHandler(FileSystemEventHandler):
    def __init__(
        self,
        root: Path,
        notifier: ChangeNotifier,
        history: EditHistory | None = None,
        excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
    ) -> None:
        super().__init__()
        self._root = root
        self._notifier = notifier
        self._history = history
        self._excluded_dirs = frozenset(excluded_dirs)

    def on_created(self, event: FileSystemEvent) -> None:
        self._publish(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._publish(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._publish(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        paths = self._publish(event)
        if paths and self._history is not None:
            self._history.record_save(paths[0])

    def _publish(self, event: FileSystemEvent) -> tuple[str, ...]:
        if event.is_directory:
            return ()
        candidates = [_as_str(event.src_path)]
        dest = getattr(event, "dest_path", "")
        if dest:
            candidates.append(_as_str(dest))
        paths = tuple(p for p in candidates if not self._should_ignore(Path(p)))
        if paths:
            self._notifier.publish(ContextChange(kind=ContextChangeKind.FILES_CHANGED, paths=paths))
        return paths

    def _should_ignore(self, path: Path) -> bool:
        try:
            rel = path.relative_to(self._root)
        except ValueError:
            return True
        return any(part in self._excluded_dirs for part in rel.parts)


class WorkspaceWatcher:
    """Runs a watchdog observer over a workspace root until stopped."""

    def __init__(
        self,
        root: Path,
        notifier: ChangeNotifier,
        history: EditHistory | None = None,
        excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
    ) -> None:
        self.root = root.expanduser().resolve()
        self.handler = ContextEventHandler(self.root, notifier, history, excluded_dirs)
        self._observer: Observer | None = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self.handler, str(self.root), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.debug("Watching %s for context changes", self.root)

    def stop(self, timeout: float = 5.0) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout)
        self._observer = None

    def __enter__(self) -> WorkspaceWatcher:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()


__all__ = ["ContextEventHandler", "WorkspaceWatcher"]
